"""Logging for FinTrack.

Both entrypoints (the FastAPI app and the Streamlit page) call
``configure_logging()``. Streamlit re-executes its script on every
interaction, so repeated calls are no-ops unless ``force=True``.

Modules only ever ask for ``get_logger(__name__)``.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys
from typing import IO, Optional, Union

from fintrack import config

ROOT_LOGGER = "fintrack"
DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

# pdfminer (under pdfplumber) logs every parsed object at DEBUG
QUIET_LOGGERS = ("pdfminer", "httpx", "httpcore", "openai", "urllib3")

_configured = False


def level_from(value: Union[int, str, None]) -> int:
    if isinstance(value, int):
        return value
    name = str(value or "").strip().upper()
    if name.isdigit():
        return int(name)
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(
    level: Union[int, str, None] = None,
    *,
    log_file: Optional[str] = None,
    stream: Optional[IO[str]] = None,
    force: bool = False,
) -> logging.Logger:
    """Attach FinTrack's handlers to the ``fintrack`` logger.

    ``level`` and ``log_file`` default to ``FINTRACK_LOG_LEVEL`` and
    ``FINTRACK_LOG_FILE``.
    """

    global _configured
    logger = logging.getLogger(ROOT_LOGGER)
    if _configured and not force:
        return logger

    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    formatter = logging.Formatter(DEFAULT_FORMAT)

    console = logging.StreamHandler(stream or sys.stderr)
    console.setFormatter(formatter)
    logger.addHandler(console)

    log_file = log_file if log_file is not None else config.LOG_FILE
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.setLevel(level_from(level if level is not None else config.LOG_LEVEL))
    logger.propagate = False

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
    return logger


def get_logger(name: str) -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if not _configured and not root.handlers:
        # Silent until an entrypoint configures logging
        root.addHandler(logging.NullHandler())
    return logging.getLogger(name)
