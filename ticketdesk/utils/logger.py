"""
Logging configuration
"""
import logging
import sys
from ticketdesk.config import get_settings

settings = get_settings()


def setup_logger(name: str) -> logging.Logger:
    """
    Setup logger with standard format

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    # Console handler (once per logger name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return the configured logger for a module"""
    return setup_logger(name)
