"""Logging setup for the search engine.

Console output goes to stderr at the configured level; a file under the system
temp directory captures everything from DEBUG up.
"""

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER_NAME = "src.serp"

_configured = False


def setup_logging(settings: "Settings", force: bool = False) -> logging.Logger:
    """Attach console and file handlers to the package logger.

    Safe to call repeatedly; handlers are only installed once unless ``force`` is set.

    Args:
        settings: Application settings (LOG_LEVEL, LOG_DIR, LOG_FILE_NAME, LOG_TO_FILE)
        force: Drop existing handlers and configure again

    Returns:
        The package root logger
    """
    global _configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    if _configured and not force:
        return root

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    console_level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(console_level, int):
        console_level = logging.INFO

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(formatter)
    root.addHandler(console)
    root.setLevel(logging.DEBUG)
    root.propagate = False

    if settings.LOG_TO_FILE:
        log_path = os.path.join(settings.LOG_DIR, settings.LOG_FILE_NAME)
        try:
            os.makedirs(settings.LOG_DIR, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
        except OSError as e:
            root.warning(f"File logging disabled, cannot open {log_path}: {e}")
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    _configured = True
    return root
