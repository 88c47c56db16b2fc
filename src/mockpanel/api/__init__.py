"""Transport boundary: FastAPI WebSocket and REST endpoints."""

from .app import build_manager, create_app
from .protocol import CommandHandler, ProtocolError, parse_command

__all__ = ["build_manager", "create_app", "CommandHandler", "ProtocolError", "parse_command"]
