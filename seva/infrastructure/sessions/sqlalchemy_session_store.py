# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import delete

from seva.domain.sessions.entities import Session
from seva.domain.sessions.repositories import SessionStore
from seva.infrastructure.db.models import WebSession
from seva.infrastructure.db.session import session_scope
from seva.infrastructure.repositories.users.sqlalchemy_user_repository import as_utc


class SqlAlchemySessionStore(SessionStore):
    def load(self, session_id: str) -> Session | None:
        with session_scope() as db:
            row = db.get(WebSession, session_id)
            if row is None:
                return None
            return Session(
                session_id=row.session_id,
                created_at=as_utc(row.created_at) or datetime.now(UTC),
                last_activity_at=as_utc(row.last_activity_at) or datetime.now(UTC),
                user_id=row.user_id,
                role=row.role,
                user_email=row.user_email,
                user_name=row.user_name,
                csrf_token=row.csrf_token,
                csrf_token_created_at=as_utc(row.csrf_token_created_at),
            )

    def save(self, session: Session) -> None:
        with session_scope() as db:
            db.merge(
                WebSession(
                    session_id=session.session_id,
                    user_id=session.user_id,
                    role=session.role,
                    user_email=session.user_email,
                    user_name=session.user_name,
                    csrf_token=session.csrf_token,
                    csrf_token_created_at=session.csrf_token_created_at,
                    created_at=session.created_at,
                    last_activity_at=session.last_activity_at,
                )
            )

    def delete(self, session_id: str) -> None:
        with session_scope() as db:
            db.execute(delete(WebSession).where(WebSession.session_id == session_id))

    def purge_expired(self, older_than: datetime) -> int:
        with session_scope() as db:
            result = db.execute(
                delete(WebSession).where(WebSession.last_activity_at < older_than)
            )
            return result.rowcount or 0
