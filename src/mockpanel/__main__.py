"""Main entry point for MockPanel.

Serves the practice API:
- WebSocket /ws: sessions, turn events, streamed speech
- REST /health and /api/sessions

Text comes from Claude (default) or Gemini, speech from Deepgram Aura.
"""

import logging
import sys

import uvicorn

from .api.app import create_app
from .core.config import PanelConfig
from .utils.logger import setup_logger


def main():
    """Main entry point for MockPanel."""

    # Load configuration (.env included)
    config = PanelConfig.from_env()

    # Setup logging
    setup_logger(verbose=config.verbose, save_to_file=config.save_logs, log_dir=config.log_dir)
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info("MOCKPANEL - MULTI-AGENT PRACTICE SERVER")
    logger.info("=" * 60)

    # Validate API keys
    if config.llm_provider in ("anthropic", "claude") and not config.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY not set. Sessions cannot be created until a key is configured.")
    if config.llm_provider in ("gemini", "google") and not config.gemini_api_key:
        logger.warning("GEMINI_API_KEY not set. Sessions cannot be created until a key is configured.")
    if not config.deepgram_api_key and not config.tts_dry_run:
        logger.warning("DEEPGRAM_API_KEY not set. Speech will be silent (dry run).")

    try:
        app = create_app(config)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    logger.info(f"Listening on http://{config.host}:{config.port} (WebSocket: /ws)")
    uvicorn.run(app, host=config.host, port=config.port, log_level="debug" if config.verbose else "info")


if __name__ == "__main__":
    main()
