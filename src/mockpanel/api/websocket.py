"""WebSocket endpoint for practice sessions.

Text frames carry JSON commands (see ``protocol``). Binary frames from the
client are accepted and ignored. Sessions outlive their connection; they are
removed through the REST API or on shutdown.
"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..core.events import EventType
from .protocol import CommandHandler

logger = logging.getLogger(__name__)

router = APIRouter()

WELCOME_MESSAGE = "Connected to MockPanel. Start a session to begin practicing."


@router.websocket("/ws")
async def practice_websocket(websocket: WebSocket):
    """WebSocket endpoint for one practice client."""
    manager = websocket.app.state.manager

    await websocket.accept()
    client = websocket.client.host if websocket.client else "unknown"
    logger.info(f"WebSocket client connected from {client}")

    handler = CommandHandler(manager, websocket.send_json, websocket.send_bytes)

    try:
        await websocket.send_json({"type": EventType.CONNECTED.value, "message": WELCOME_MESSAGE})

        # Main message loop
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            text = message.get("text")
            if text is None:
                # Binary audio from the client is not used
                continue

            try:
                await handler.handle_text(text)
            except WebSocketDisconnect:
                raise
            except Exception as e:
                logger.error(f"Error handling message (session: {handler.session_id}): {e}", exc_info=True)
                await handler.send_error("Internal server error")

    except WebSocketDisconnect:
        pass
    finally:
        handler.connected = False
        logger.info(f"WebSocket client disconnected (session: {handler.session_id or 'none'})")
