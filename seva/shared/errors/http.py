# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from http import HTTPStatus

from flask import Flask, Response, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from seva.shared.config import load_config
from seva.shared.logging import logger

from .base import (
    AppError,
    CsrfError,
    DependencyError,
    IntegrityError,
    LockoutError,
    RateLimitError,
)

# client-caused failures worth noticing in the logs
_SUSPICIOUS = (CsrfError, IntegrityError, LockoutError, RateLimitError)


def _where() -> str:
    action = request.args.get("action")
    target = f"{request.method} {request.path}" + (f"?action={action}" if action else "")
    return f"{target} user={g.get('user_id')}"


def handle_app_error(error: AppError) -> tuple[Response, HTTPStatus]:
    response = jsonify(error.to_dict())
    if isinstance(error, RateLimitError):
        response.headers["Retry-After"] = str(error.retry_after)
    return response, error.status


def register_error_handler(app: Flask) -> None:
    config = load_config()
    expose_details = config.expose_error_details

    @app.errorhandler(AppError)
    def _on_app_error(exc: AppError):
        if exc.status >= HTTPStatus.INTERNAL_SERVER_ERROR:
            logger.error(f"{exc.code} ({exc.status.value}) on {_where()}")
        elif isinstance(exc, _SUSPICIOUS):
            logger.warning(f"{exc.code} ({exc.status.value}) on {_where()}")
        else:
            logger.debug(f"{exc.code} ({exc.status.value}) on {_where()}")
        return handle_app_error(exc)

    @app.errorhandler(HTTPException)
    def _on_http_exception(exc: HTTPException):
        logger.debug(f"{exc.code} {exc.name} on {_where()}")
        error = (exc.name or "http_error").lower().replace(" ", "_")
        response = jsonify({"success": False, "error": error})
        if exc.code == HTTPStatus.METHOD_NOT_ALLOWED and getattr(exc, "valid_methods", None):
            response.headers["Allow"] = ", ".join(exc.valid_methods)
        return response, exc.code or HTTPStatus.INTERNAL_SERVER_ERROR

    @app.errorhandler(SQLAlchemyError)
    def _on_database_error(exc: SQLAlchemyError):
        logger.opt(exception=exc).error(f"database error {type(exc).__name__} on {_where()}")
        context = {"detail": str(exc)} if expose_details else None
        return handle_app_error(DependencyError("database_unavailable", context=context))

    @app.errorhandler(Exception)
    def _on_unexpected(exc: Exception):
        if config.debug_logging:
            logger.exception(
                f"unhandled {type(exc).__name__} on {_where()} args={dict(request.args)}"
            )
        else:
            logger.opt(exception=exc).error(f"unhandled {type(exc).__name__} on {_where()}")
        body: dict[str, object] = {"success": False, "error": "internal_error"}
        if expose_details:
            body["context"] = {"detail": str(exc)}
        return jsonify(body), HTTPStatus.INTERNAL_SERVER_ERROR


__all__ = ["handle_app_error", "register_error_handler"]
