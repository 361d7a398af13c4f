"""Centralized logging configuration for SongSlides.

Sets up a console handler and a rotating file handler with a consistent
format. Called once from main.py before any window is created.
"""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from config import USER_DATA_DIR


DEFAULT_LOG_FILENAME = "songslides.log"
LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%H:%M:%S"


def get_default_log_dir() -> Path:
    """Return a per-user log directory, falling back to cwd if not writable."""
    try:
        USER_DATA_DIR.mkdir(parents=True, exist_ok=True)
        return USER_DATA_DIR
    except OSError:
        return Path.cwd()


def get_default_log_path() -> Path:
    return get_default_log_dir() / DEFAULT_LOG_FILENAME


def _resolve_level(level: str | int) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return int(level)


def setup_logging(
    *,
    level: str | int = "INFO",
    log_file: Optional[str | Path] = None,
    logger_name: Optional[str] = None,
    add_console: bool = True,
) -> logging.Logger:
    """Configure logging for the application.

    - level: str or int (DEBUG/INFO/WARNING/ERROR)
    - log_file: path for the rotating file handler (default: per-user dir)
    - logger_name: root logger by default; can scope to a sub-logger
    - add_console: add a console StreamHandler in addition to the file handler
    """
    resolved_level = _resolve_level(level)
    logger = logging.getLogger(logger_name) if logger_name else logging.getLogger()

    # Avoid duplicating handlers if called multiple times
    if logger.handlers:
        logger.setLevel(resolved_level)
        for handler in logger.handlers:
            handler.setLevel(resolved_level)
        return logger

    logger.setLevel(resolved_level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    log_path = Path(log_file) if log_file else get_default_log_path()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
        )
        file_handler.setLevel(resolved_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except OSError:
        # Read-only home or similar: console only
        pass

    if add_console:
        console = logging.StreamHandler()
        console.setLevel(resolved_level)
        console.setFormatter(formatter)
        logger.addHandler(console)

    return logger
