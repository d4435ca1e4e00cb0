import logging
import os
from logging.handlers import TimedRotatingFileHandler

from app.config import settings

ERROR_LOGGER_NAME = "app.errors"


def setup_logging() -> logging.Logger:
    """Configure the root logger and the rotating error sink. Safe to call twice."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    error_logger = logging.getLogger(ERROR_LOGGER_NAME)
    if not error_logger.handlers:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        handler = TimedRotatingFileHandler(
            os.path.join(settings.LOG_DIR, "error.log"),
            when="midnight",
            backupCount=settings.LOG_RETENTION_DAYS,
            encoding="utf-8",
            delay=True,
        )
        handler.setLevel(logging.WARNING)
        handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
        error_logger.addHandler(handler)
    return error_logger


def log_error_response(status_code: int, message: str, url: str, method: str) -> None:
    """Write one 4xx/5xx event to the error sink."""
    line = f"Status: {status_code}, Message: {message}, URL: {url}, Method: {method}"
    logger = logging.getLogger(ERROR_LOGGER_NAME)
    if status_code >= 500:
        logger.error(line)
    elif status_code >= 400:
        logger.warning(line)
