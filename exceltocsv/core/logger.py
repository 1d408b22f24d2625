from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys
from .options import _home_dir


LOGGER_NAMESPACES = ("exceltocsv", "exceltocsv_io")
_LOGGER: logging.Logger | None = None
_HANDLERS: list[logging.Handler] = []


def get_logger(log_dir: Path | None = None) -> logging.Logger:
    """Return the configured application logger writing to <home>/logs/exceltocsv.log.

    Creates the directory if needed. Uses rotating file handler. Library modules log
    through ``logging.getLogger(__name__)`` and inherit these handlers.
    """
    global _LOGGER
    if _LOGGER is not None:
        return _LOGGER

    if log_dir is None:
        base = _home_dir() / "logs"
    else:
        base = Path(log_dir)
    base.mkdir(parents=True, exist_ok=True)
    log_path = base / "exceltocsv.log"

    _detach_handlers()

    fmt = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = RotatingFileHandler(log_path, maxBytes=2 * 1024 * 1024, backupCount=3, encoding="utf-8")
    file_handler.setFormatter(fmt)

    # stdout carries the conversion report; warnings go to stderr.
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(fmt)
    console.setLevel(logging.WARNING)
    _HANDLERS.extend([file_handler, console])

    for name in LOGGER_NAMESPACES:
        namespace_logger = logging.getLogger(name)
        namespace_logger.setLevel(logging.INFO)
        namespace_logger.propagate = False
        for handler in _HANDLERS:
            namespace_logger.addHandler(handler)

    _LOGGER = logging.getLogger("exceltocsv")
    return _LOGGER


def set_level(level: int) -> None:
    """Apply ``level`` to every application logger namespace."""

    for name in LOGGER_NAMESPACES:
        logging.getLogger(name).setLevel(level)


def _detach_handlers() -> None:
    for name in LOGGER_NAMESPACES:
        namespace_logger = logging.getLogger(name)
        for handler in _HANDLERS:
            namespace_logger.removeHandler(handler)
    for handler in _HANDLERS:
        handler.close()
    _HANDLERS.clear()
