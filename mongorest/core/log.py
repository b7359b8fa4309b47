import logging

from mongorest.core.config import Settings, config

log_format = "[mongorest] %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger("mongorest")


def configure_logging(settings: Settings = config) -> logging.Logger:
    """Attach a stream handler to the package logger and set its level from settings."""
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(log_format))
        logger.addHandler(handler)
    level = logging.INFO if settings.DEBUG else settings.LOG_LEVEL.upper()
    logger.setLevel(level)
    return logger
