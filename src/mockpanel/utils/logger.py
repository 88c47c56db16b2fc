"""Logging configuration for MockPanel."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

# SDK loggers that log every HTTP request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "google_genai", "aiohttp.access")

CONSOLE_FORMAT = "%(levelname)-7s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _from_mockpanel(record: logging.LogRecord) -> bool:
    return record.name == "mockpanel" or record.name.startswith("mockpanel.")


def _file_handler(log_dir: str) -> Optional[logging.Handler]:
    """Timestamped session log file, or None if the directory is unusable."""
    path = Path(log_dir)
    try:
        path.mkdir(parents=True, exist_ok=True)
        log_file = path / f"mockpanel_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
        handler = logging.FileHandler(log_file)
    except OSError as e:
        logging.getLogger(__name__).error(f"Failed to create log file in {path}: {e}")
        return None

    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%H:%M:%S"))
    return handler


def setup_logger(
    verbose: bool = False, save_to_file: bool = False, log_dir: str = "data/logs"
) -> logging.Logger:
    """
    Configure logging for the server.

    The console shows MockPanel's own records only; uvicorn keeps its own
    handlers. The optional file gets everything, in a detailed format.

    Args:
        verbose: If True, set level to DEBUG, otherwise INFO
        save_to_file: If True, also log to a timestamped file
        log_dir: Directory for log files

    Returns:
        Configured root logger
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    console.addFilter(_from_mockpanel)
    root.addHandler(console)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if save_to_file:
        handler = _file_handler(log_dir)
        if handler is not None:
            root.addHandler(handler)
            root.info(f"Logging to file: {handler.baseFilename}")

    return root
