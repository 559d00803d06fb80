# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable
from functools import wraps

from flask import request

SAFE_METHODS: tuple[str, ...] = ("GET", "HEAD", "OPTIONS")


def presented_csrf_token() -> str:
    """Token from the ``X-CSRF-Token`` header, else the ``csrf_token`` body field."""

    header = (request.headers.get("X-CSRF-Token") or "").strip()
    if header:
        return header
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        value = body.get("csrf_token")
        if isinstance(value, str):
            return value.strip()
    return (request.form.get("csrf_token") or "").strip()


def csrf_protect(f: Callable):
    """Guard a controller method; the controller provides ``_csrf_guard`` and ``_current_session``."""

    @wraps(f)
    def wrapper(self, *args, **kwargs):
        if request.method not in SAFE_METHODS:
            self._csrf_guard.require(self._current_session(), presented_csrf_token())
        return f(self, *args, **kwargs)

    return wrapper


__all__ = ["SAFE_METHODS", "csrf_protect", "presented_csrf_token"]
