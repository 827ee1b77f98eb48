"""
Logging setup for the relay.

All relay modules log through the "voice_relay" logger with a "[Twilio]",
"[ElevenLabs]" or "[Server]" prefix naming the side a record is about. Per-frame
media traffic is only logged at DEBUG, so the chatty client libraries underneath
(websockets frame tracing, the Twilio HTTP client) are held at WARNING unless the
relay itself runs at DEBUG.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from voice_relay.config.constants import LOGGER_NAME

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOG_DIR = Path("logs")
LOG_FILE_NAME = "voice_relay.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5

# Library loggers that emit a record per frame or per HTTP request
NOISY_LOGGERS = ("websockets", "twilio.http_client", "urllib3")


def _build_handlers(log_dir: Optional[Path]) -> List[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    handlers: List[logging.Handler] = [console_handler]

    if log_dir is None:
        return handlers

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / LOG_FILE_NAME,
            maxBytes=MAX_LOG_SIZE,
            backupCount=BACKUP_COUNT,
        )
    except OSError as e:
        # Read-only deployments still get console logging
        console_handler.handle(
            logging.makeLogRecord({
                "name": LOGGER_NAME,
                "levelno": logging.WARNING,
                "levelname": "WARNING",
                "msg": f"[Server] File logging disabled: {e}",
            })
        )
        return handlers

    file_handler.setFormatter(formatter)
    handlers.append(file_handler)
    return handlers


def configure_logging(
    level: Optional[str] = None,
    log_dir: Optional[Path] = LOG_DIR,
) -> logging.Logger:
    """
    Configure the relay logger. Safe to call repeatedly; handlers are replaced.

    Args:
        level: Log level name; falls back to the LOG_LEVEL environment variable
        log_dir: Directory for the rotating log file, or None for console only

    Returns:
        logging.Logger: The "voice_relay" logger
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    relay_level = getattr(logging, level_name, logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(relay_level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    for handler in _build_handlers(log_dir):
        logger.addHandler(handler)
    logger.propagate = False

    library_level = logging.DEBUG if relay_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    logger.info(f"[Server] Logging configured at {logging.getLevelName(relay_level)}")
    return logger
