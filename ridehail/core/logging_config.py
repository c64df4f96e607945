"""Настройка логирования с поддержкой request_id."""

import logging
import logging.config
from contextvars import ContextVar
from typing import Optional

from ridehail.core.config import settings

# ContextVar для хранения request_id в рамках одного запроса
request_id_var: ContextVar[str] = ContextVar("request_id", default="N/A")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"


class RequestIdFilter(logging.Filter):
    """Добавляет в каждую запись лога атрибут request_id."""

    def __init__(self, request_id_storage: ContextVar = request_id_var, name: str = ""):
        super().__init__(name)
        self.request_id_storage = request_id_storage

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = self.request_id_storage.get()
        return True


def setup_logging(level: Optional[str] = None) -> None:
    """Настраивает корневой логгер. Повторный вызов безопасен."""
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_id": {"()": RequestIdFilter},
        },
        "formatters": {
            "default": {"format": LOG_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "filters": ["request_id"],
            },
        },
        "root": {
            "handlers": ["console"],
            "level": (level or settings.LOG_LEVEL).upper(),
        },
    })
