# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import hashlib
import secrets
import time
from collections.abc import Callable, Mapping

from flask import Flask, Response, g, request

from seva.shared.config import load_config
from seva.shared.logging import clear_correlation_id, logger, set_correlation_id

_MASKED_HEADERS = frozenset({"authorization", "cookie", "x-csrf-token", "x-verify"})
_MASKED_ARG_FRAGMENTS = ("password", "token", "key", "secret", "checksum")
_REQUEST_ID_MAX = 64


def _remote_ip() -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    return forwarded.split(",")[0].strip() or request.remote_addr or "unknown"


def _fingerprint(value: str) -> str:
    return f"<sha256:{hashlib.sha256(value.encode()).hexdigest()[:8]}>"


def _masked_headers(headers: Mapping[str, str]) -> dict[str, str]:
    return {
        name: _fingerprint(value) if name.lower() in _MASKED_HEADERS else value
        for name, value in headers.items()
    }


def _masked_args(args: Mapping[str, str]) -> dict[str, str]:
    return {
        name: "<redacted>" if any(part in name.lower() for part in _MASKED_ARG_FRAGMENTS) else value
        for name, value in args.items()
    }


def _describe_request(verbose: bool) -> str:
    # action selects the operation on /auth and /donations
    line = f"{request.method} {request.path}"
    action = request.args.get("action")
    if action:
        line += f" action={action}"
    line += f" from {_remote_ip()}"
    if verbose:
        line += (
            f" args={_masked_args(request.args)}"
            f" headers={_masked_headers(request.headers)}"
            f" body_size={request.content_length or 0}"
        )
    return line


def configure_request_logging(
    app: Flask, *, on_complete: Callable[[str, int, float], None] | None = None
) -> None:
    """Per-request correlation id plus start/end log lines.

    ``on_complete`` receives ``(endpoint, status, seconds)`` after every response
    and is how request latency reaches the metrics registry.
    """
    verbose = load_config().debug_logging

    @app.before_request
    def _start() -> None:
        supplied = (request.headers.get("X-Request-ID") or "").strip()[:_REQUEST_ID_MAX]
        set_correlation_id(supplied or secrets.token_hex(6))
        g.request_started = time.perf_counter()
        logger.info(f"-> {_describe_request(verbose)}")

    @app.after_request
    def _finish(response: Response) -> Response:
        elapsed = time.perf_counter() - g.get("request_started", time.perf_counter())
        logger.info(
            f"<- {request.method} {request.path} status={response.status_code} "
            f"duration={elapsed:.3f}s"
        )
        if on_complete is not None:
            on_complete(request.endpoint or request.path, response.status_code, elapsed)
        return response

    @app.teardown_request
    def _cleanup(exc: BaseException | None) -> None:
        if exc is not None:
            logger.error(f"request failed: {type(exc).__name__} on {request.method} {request.path}")
        clear_correlation_id()


__all__ = ["configure_request_logging"]
