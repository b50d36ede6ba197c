"""Project logger ``chatrelay``; modules take children of it via ``get_logger``."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from chatrelay.config.settings import Settings, settings

LOGGER_NAME = "chatrelay"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
MAX_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 10


def resolve_level(raw: str) -> int:
    level = logging.getLevelName(str(raw or "").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _file_handler(path: str, formatter: logging.Formatter) -> logging.Handler | None:
    if not path.strip():
        return None
    log_path = Path(path.strip())
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(log_path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8")
    except OSError:
        # read-only filesystems (serverless hosts) only get stderr
        return None
    handler.setFormatter(formatter)
    return handler


def configure_logger(source: Settings) -> logging.Logger:
    project_logger = logging.getLogger(LOGGER_NAME)
    if project_logger.handlers:
        return project_logger

    project_logger.setLevel(resolve_level(source.log_level))
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    project_logger.addHandler(stream_handler)

    file_handler = _file_handler(source.log_file_path, formatter)
    if file_handler is not None:
        project_logger.addHandler(file_handler)

    project_logger.propagate = False
    return project_logger


logger = configure_logger(settings)


def get_logger(name: str) -> logging.Logger:
    return logger.getChild(name)
