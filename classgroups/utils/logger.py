"""
Logging for the whole package: one "classgroups" logger with a rotating file
handler under Settings.log_dir and a console handler, both stamped with the
request id of the HTTP call being served.
"""

from __future__ import annotations

import copy
import logging
import os
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, Optional

REQUEST_ID: ContextVar[str] = ContextVar("request_id", default="-")

LOGGER_NAME = "classgroups"
LOG_FILE = "classgroups.log"
LOG_FORMAT = (
    "%(asctime)s %(levelname)-8s %(name)s "
    "pid=%(process)d request_id=%(request_id)s src=%(filename)s:%(lineno)d "
    "%(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 (shadow built-in name)
        record.request_id = REQUEST_ID.get("-")
        return True


class ColorFormatter(logging.Formatter):
    """ANSI colors for the console: blue timestamp, dim name/request id, colored level."""

    _RESET = "\x1b[0m"
    _DIM = "\x1b[2m"
    _BLUE = "\x1b[34m"
    _LEVEL_COLORS: dict[int, str] = {
        logging.DEBUG: "\x1b[36m",
        logging.INFO: "\x1b[32m",
        logging.WARNING: "\x1b[33m",
        logging.ERROR: "\x1b[31m",
        logging.CRITICAL: "\x1b[35m",
    }

    def __init__(self, *args, enable_color: bool = True, **kwargs):
        super().__init__(*args, **kwargs)
        self.enable_color = enable_color

    def _paint(self, color: str, text: str) -> str:
        return f"{color}{text}{self._RESET}"

    def format(self, record: logging.LogRecord) -> str:
        if not self.enable_color:
            return super().format(record)
        r = copy.copy(record)
        r.levelname = self._paint(self._LEVEL_COLORS.get(r.levelno, "\x1b[37m"), r.levelname)
        r.name = self._paint(self._DIM, r.name)
        r.request_id = self._paint(self._DIM, getattr(r, "request_id", "-"))
        return super().format(r)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        ts = super().formatTime(record, datefmt)
        return self._paint(self._BLUE, ts) if self.enable_color else ts


def _color_wanted(stream) -> bool:
    if os.getenv("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def _level_number(level: str) -> int:
    return logging.getLevelNamesMapping().get((level or "INFO").upper(), logging.INFO)


def _file_handler(log_dir: Path) -> Optional[logging.Handler]:
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            filename=str(log_dir / LOG_FILE),
            maxBytes=10 * 1024 * 1024,
            backupCount=10,
            encoding="utf-8",
        )
    except OSError:
        # read-only checkout or similar: console logging still works
        return None
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ColorFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT, enable_color=_color_wanted(sys.stdout))
    )
    return handler


def configure_logging(log_dir: str | Path | None = None, level: str | None = None) -> logging.Logger:
    """
    Return the package logger, building its handlers on first use.

    Missing arguments come from Settings (LOG_DIR / LOG_LEVEL). Calling again
    with the same target is a no-op; a different directory or level rebuilds
    the handlers, which is how create_app() applies its own Settings.
    """
    if log_dir is None or level is None:
        from classgroups.config import get_settings

        settings = get_settings()
        log_dir = settings.log_dir if log_dir is None else log_dir
        level = settings.log_level if level is None else level

    logger = logging.getLogger(LOGGER_NAME)
    target = (Path(log_dir).resolve(), _level_number(level))
    if getattr(logger, "_target", None) == target:
        return logger

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(target[1])
    logger.propagate = False
    request_filter = RequestIdFilter()
    for handler in (_file_handler(target[0]), _console_handler()):
        if handler is None:
            continue
        handler.setLevel(target[1])
        handler.addFilter(request_filter)
        logger.addHandler(handler)

    logger._target = target  # type: ignore[attr-defined]
    return logger


def set_request_id(request_id: Optional[str] = None) -> str:
    rid = request_id or str(uuid.uuid4())
    REQUEST_ID.set(rid)
    return rid


def clear_request_id() -> None:
    REQUEST_ID.set("-")


@contextmanager
def log_timing(logger: logging.Logger, operation: str) -> Iterator[None]:
    """Log how long `operation` took: DEBUG on success, WARNING if it raised."""
    start = time.perf_counter()
    try:
        yield
    except BaseException:
        logger.warning("%s failed duration_ms=%d", operation, (time.perf_counter() - start) * 1000)
        raise
    logger.debug("%s ok duration_ms=%d", operation, (time.perf_counter() - start) * 1000)
