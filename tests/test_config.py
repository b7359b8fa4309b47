# ==============================================================================
# SETTINGS AND LOGGING TESTS
# ==============================================================================

import logging

from mongorest.core.config import Settings
from mongorest.core.log import configure_logging


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("MONGOREST_MONGODB_DB", "from-env")
    monkeypatch.setenv("MONGOREST_DEFAULT_ERROR_STATUS", "400")

    settings = Settings()

    assert settings.MONGODB_DB == "from-env"
    assert settings.DEFAULT_ERROR_STATUS == 400
    assert settings.MONGODB_URL == "mongodb://localhost:27017"


def test_configure_logging_levels():
    logger = configure_logging(Settings(LOG_LEVEL="error"))
    assert logger.level == logging.ERROR
    assert len(logger.handlers) == 1

    configure_logging(Settings(DEBUG=True))
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
