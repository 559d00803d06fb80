# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, scoped_session, sessionmaker

from seva.shared.config import load_config
from seva.shared.config.settings import DatabaseConfig
from seva.shared.logging import logger


class Base(DeclarativeBase):
    pass


def _sqlite_pragmas(busy_timeout_ms: int) -> tuple[str, ...]:
    return (
        "PRAGMA journal_mode=WAL",
        "PRAGMA synchronous=NORMAL",
        "PRAGMA foreign_keys=ON",
        f"PRAGMA busy_timeout={busy_timeout_ms}",
    )


def _install_sqlite_hooks(engine: Engine, settings: DatabaseConfig) -> None:
    pragmas = _sqlite_pragmas(int(settings.pool_timeout * 1000))

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _record) -> None:
        # pysqlite's implicit BEGIN is disabled; SQLAlchemy's "begin" event issues it
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        try:
            for pragma in pragmas:
                cursor.execute(pragma)
        finally:
            cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        # every transaction holds the write lock from its first statement
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(settings: DatabaseConfig) -> Engine:
    url = settings.url
    options: dict[str, Any] = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        options["connect_args"] = {
            "check_same_thread": False,
            "timeout": int(settings.pool_timeout),
        }
    if ":memory:" not in url and url != "sqlite://":
        options.update(
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_timeout=settings.pool_timeout,
        )

    engine = create_engine(url, **options)
    if url.startswith("sqlite"):
        _install_sqlite_hooks(engine, settings)
    return engine


ENGINE: Engine = build_engine(load_config().database)

SessionLocal = scoped_session(
    sessionmaker(bind=ENGINE, autoflush=False, expire_on_commit=False)
)


@contextmanager
def session_scope() -> Iterator[Session]:
    """Unit of work: commit on clean exit, roll back and re-raise otherwise."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.debug("db: transaction rolled back")
        raise
    finally:
        session.close()
        SessionLocal.remove()


def init_db() -> None:
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=ENGINE)
    logger.info(f"db: schema ensured on {ENGINE.url.render_as_string(hide_password=True)}")
