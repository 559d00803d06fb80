# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from http import HTTPStatus

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from seva.infrastructure.db import ENGINE
from seva.shared.logging import logger


def database_status() -> str:
    try:
        with ENGINE.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.opt(exception=exc).error("health: database check failed")
        return "error"
    return "ok"


def health_report() -> tuple[dict[str, object], HTTPStatus]:
    """Readiness summary for load balancers; 503 while the database is unreachable."""

    database = database_status()
    ok = database == "ok"
    return {"ok": ok, "database": database}, (
        HTTPStatus.OK if ok else HTTPStatus.SERVICE_UNAVAILABLE
    )


__all__ = ["database_status", "health_report"]
