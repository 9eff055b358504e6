"""Logging configuration for client events."""
import logging
from logging.handlers import RotatingFileHandler

from .config import LOG_FILE


def configure_logging() -> logging.Logger:
    """Configure client-wide logging to a rotating file handler."""
    logger = logging.getLogger("pulse_chat_client")
    logger.setLevel(logging.INFO)
    if not logger.handlers:
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=3, delay=True)
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
