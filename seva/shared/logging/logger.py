# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""loguru setup: one stderr sink, an optional file sink, request correlation ids."""

from __future__ import annotations

import logging
import os
import sys
from contextvars import ContextVar
from typing import Any

from loguru import logger as _logger

from .sensitive_filter import sanitize_record

_NO_CORRELATION = "-"

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default=_NO_CORRELATION)

_LINE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<lvl>{level:<8}</lvl> | "
    "<magenta>{extra[correlation_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<lvl>{message}</lvl>"
)

# third-party loggers and the level they are clamped to
_LIBRARY_LEVELS = {
    "werkzeug": logging.INFO,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
}


def set_correlation_id(value: str | None) -> None:
    _correlation_id.set(value or _NO_CORRELATION)


def get_correlation_id() -> str:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(_NO_CORRELATION)


class _StdlibBridge(logging.Handler):
    """Forwards stdlib records (werkzeug, sqlalchemy) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = _logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        _logger.bind(correlation_id=get_correlation_id()).opt(
            depth=6, exception=record.exc_info
        ).log(level, record.getMessage())


class ContextualLogger:
    """loguru proxy that binds the current request's correlation id on every call."""

    def __getattr__(self, name: str) -> Any:  # pragma: no cover
        return getattr(_logger.bind(correlation_id=get_correlation_id()), name)


def _add_sink(target: Any, level: str, **options: Any) -> None:
    _logger.add(
        target,
        level=level,
        format=_LINE_FORMAT,
        backtrace=False,
        diagnose=False,
        filter=sanitize_record,
        **options,
    )


def setup_logging(level: str | None = None, *, debug_mode: bool = False) -> None:
    resolved = "DEBUG" if debug_mode else (level or os.getenv("LOG_LEVEL") or "INFO")
    resolved = resolved.upper()

    _logger.remove()
    _logger.configure(extra={"correlation_id": _NO_CORRELATION})
    _add_sink(sys.stderr, resolved, colorize=True)

    log_file = os.getenv("LOG_FILE")
    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        _add_sink(
            log_file,
            resolved,
            colorize=False,
            enqueue=True,
            encoding="utf-8",
            rotation="10 MB",
            retention=5,
        )

    logging.basicConfig(handlers=[_StdlibBridge()], level=0, force=True)
    for name, library_level in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(library_level)


logger = ContextualLogger()

__all__ = [
    "clear_correlation_id",
    "get_correlation_id",
    "logger",
    "set_correlation_id",
    "setup_logging",
]
