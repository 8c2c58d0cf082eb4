"""Logging setup for StudyShelf."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from studyshelf.config.models import LoggingSettings

PACKAGE_LOGGER = "studyshelf"


def configure_logging(settings: LoggingSettings, directory: Path) -> RotatingFileHandler | None:
    """Attach a rotating file handler for the package logger.

    Calling this again for the same log file reuses the existing handler.

    Args:
        settings: Logging section of the configuration.
        directory: Directory that receives the log file.

    Returns:
        RotatingFileHandler | None: The active handler, or ``None`` when the
        log directory cannot be created.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    level = logging.getLevelName(settings.level.upper())
    logger.setLevel(level if isinstance(level, int) else logging.WARNING)

    log_path = (Path(directory).expanduser() / settings.file_name).resolve()
    for handler in logger.handlers:
        if isinstance(handler, RotatingFileHandler) and Path(handler.baseFilename) == log_path:
            return handler

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        return None

    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=max(1, settings.max_size_mb) * 1024 * 1024,
        backupCount=settings.backup_count,
        encoding="utf-8",
        delay=True,
    )
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)
    return handler


__all__ = ["configure_logging", "PACKAGE_LOGGER"]
