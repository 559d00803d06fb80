# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from itertools import count

from seva.domain.sessions.entities import Session
from seva.domain.sessions.repositories import SessionStore
from seva.domain.users.entities import User
from seva.shared.logging import logger

from .tokens import new_session_id


def utcnow() -> datetime:
    return datetime.now(UTC)


class SessionManager:
    """Owns session ids: every id is minted here, none is accepted from a client."""

    def __init__(
        self,
        *,
        store: SessionStore,
        idle_timeout_s: int,
        clock: Callable[[], datetime] = utcnow,
        purge_every: int = 100,
    ) -> None:
        self._store = store
        self._idle_timeout_s = idle_timeout_s
        self._clock = clock
        self._purge_every = max(1, purge_every)
        self._writes = count(1)

    @property
    def idle_timeout_s(self) -> int:
        return self._idle_timeout_s

    def now(self) -> datetime:
        return self._clock()

    def load(self, session_id: str | None) -> Session | None:
        if not session_id:
            return None
        return self._store.load(session_id)

    def is_expired(self, session: Session) -> bool:
        return session.idle_seconds(self.now()) > self._idle_timeout_s

    def expires_in(self, session: Session) -> int:
        return max(0, int(self._idle_timeout_s - session.idle_seconds(self.now())))

    def resolve(self, session_id: str | None) -> Session:
        """Return the live session for ``session_id`` or a fresh, unsaved anonymous one."""

        session = self.load(session_id)
        if session is not None and self.is_expired(session):
            logger.info(f"session: idle expiry user_id={session.user_id}")
            self._store.delete(session.session_id)
            session = None
        if session is None:
            now = self.now()
            session = Session(session_id=new_session_id(), created_at=now, last_activity_at=now)
        return session

    def start_authenticated(self, previous: Session | None, user: User) -> Session:
        if previous is not None:
            self._store.delete(previous.session_id)
        now = self.now()
        session = Session(
            session_id=new_session_id(),
            created_at=now,
            last_activity_at=now,
            user_id=user.id,
            role=user.role.value,
            user_email=user.email,
            user_name=user.name,
        )
        self._store.save(session)
        self._maybe_purge()
        return session

    def touch(self, session: Session) -> None:
        session.last_activity_at = self.now()
        self._store.save(session)

    def save(self, session: Session) -> None:
        self._store.save(session)
        self._maybe_purge()

    def purge_expired(self) -> int:
        cutoff = self.now() - timedelta(seconds=self._idle_timeout_s)
        removed = self._store.purge_expired(cutoff)
        if removed:
            logger.info(f"session: purged {removed} idle sessions")
        return removed

    def _maybe_purge(self) -> None:
        # every Nth write sweeps sessions abandoned without a logout
        if next(self._writes) % self._purge_every == 0:
            self.purge_expired()

    def destroy(self, session: Session | None) -> None:
        if session is not None:
            self._store.delete(session.session_id)


__all__ = ["SessionManager", "utcnow"]
