"""MockPanel API - FastAPI application.

Serves the practice WebSocket and the session REST endpoints. Sessions are
held in memory by a single ``SessionManager`` on ``app.state``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..agents.llm_client import create_completion_client
from ..core.config import PanelConfig
from ..core.session_manager import SessionManager
from ..voice.deepgram_speak import DeepgramSpeakClient
from . import routes, websocket as ws_router

logger = logging.getLogger(__name__)


def build_manager(config: PanelConfig) -> SessionManager:
    """Wire the configured providers into a SessionManager."""
    provider = create_completion_client(config)
    speech_client = DeepgramSpeakClient(
        api_key=config.deepgram_api_key,
        encoding=config.tts_encoding,
        sample_rate=config.tts_sample_rate,
        connect_timeout_s=config.tts_connect_timeout_s,
        dry_run=config.tts_dry_run,
    )
    return SessionManager(config, provider, speech_client)


def create_app(
    config: Optional[PanelConfig] = None,
    manager: Optional[SessionManager] = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        config: Runtime configuration (read from the environment if omitted)
        manager: Pre-built session manager (built from config if omitted)

    Returns:
        FastAPI app
    """
    config = config or PanelConfig.from_env()
    manager = manager or build_manager(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting MockPanel API (provider={config.llm_provider})...")
        yield
        logger.info("Shutting down MockPanel API...")
        await manager.close_all()
        await manager.provider.close()
        close_speech = getattr(manager.speech_client, "close", None)
        if close_speech is not None:
            await close_speech()

    app = FastAPI(
        title="MockPanel API",
        description="Multi-agent interview practice with streamed text and speech",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.manager = manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(routes.router, tags=["sessions"])
    app.include_router(ws_router.router, tags=["websocket"])

    return app
