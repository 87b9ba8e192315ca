"""
Process-wide logging

Installs a rotating file handler and a console handler on the root logger,
sized and levelled from application settings. Calling setup_logging again
replaces the handlers it installed earlier instead of stacking new ones.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from src.utils.settings import Settings, get_settings

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

_installed_handlers: List[logging.Handler] = []


def resolve_level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(settings: Optional[Settings] = None) -> logging.Logger:
    settings = settings or get_settings()
    level = resolve_level(settings.LOG_LEVEL)
    formatter = logging.Formatter(LOG_FORMAT)

    log_dir = Path(settings.LOG_DIRECTORY).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(
        log_dir / settings.LOG_NAME,
        maxBytes=settings.LOG_MAX_BYTES,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    console_handler = logging.StreamHandler()

    root_logger = logging.getLogger()
    for handler in _installed_handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()

    for handler in (file_handler, console_handler):
        handler.setFormatter(formatter)
        handler.setLevel(level)
        root_logger.addHandler(handler)
        _installed_handlers.append(handler)

    root_logger.setLevel(level)
    return root_logger


setup_logging()


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
