# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from threading import Lock

from seva.domain.sessions.entities import Session
from seva.domain.sessions.repositories import SessionStore


class InMemorySessionStore(SessionStore):
    """Process-local store; suitable for a single worker and for tests."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = Lock()

    def load(self, session_id: str) -> Session | None:
        with self._lock:
            session = self._sessions.get(session_id)
            return replace(session) if session else None

    def save(self, session: Session) -> None:
        with self._lock:
            self._sessions[session.session_id] = replace(session)

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def purge_expired(self, older_than: datetime) -> int:
        with self._lock:
            stale = [sid for sid, s in self._sessions.items() if s.last_activity_at < older_than]
            for session_id in stale:
                del self._sessions[session_id]
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
