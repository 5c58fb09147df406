import logging
import sys
from logging.config import dictConfig
from typing import Optional

from platform_engine.config import settings

CTX_FIELDS = ("competition_id", "material_id")


def setup_logging(level: Optional[str] = None, json_fmt: Optional[bool] = None) -> None:
    """Базовая настройка логирования всего приложения."""
    level = (level or settings.log_level).upper()
    json_fmt = settings.log_json if json_fmt is None else json_fmt

    if json_fmt:
        formatter = {
            "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s "
                   "%(competition_id)s %(material_id)s",
            "json_ensure_ascii": False,
        }
    else:
        formatter = {
            "format": "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s "
                      "| comp=%(competition_id)s mat=%(material_id)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        }

    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter},
        "filters": {"ctx": {"()": CtxFilter}},
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "formatter": "default",
                "filters": ["ctx"],
            }
        },
        "root": {"level": level, "handlers": ["stdout"]},
        "loggers": {
            # SQL в логах только при отладке
            "sqlalchemy.engine": {"level": settings.log_sql},
            "platform_engine": {"level": level},
        },
    })


class CtxFilter(logging.Filter):
    """Добавляет безопасные поля, чтобы форматтер не падал, когда нет extra."""
    def filter(self, record: logging.LogRecord) -> bool:
        for k in CTX_FIELDS:
            if not hasattr(record, k):
                setattr(record, k, "-")
        return True


def attach_ctx_filter() -> None:
    """Подключает фильтр к каждому хендлеру root, в т.ч. навешанным снаружи."""
    f = CtxFilter()
    for h in logging.getLogger().handlers:
        if not any(isinstance(x, CtxFilter) for x in h.filters):
            h.addFilter(f)
