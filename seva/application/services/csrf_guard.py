# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import hmac
from collections.abc import Callable
from datetime import datetime

from seva.domain.sessions.entities import Session
from seva.shared.errors.base import CsrfError
from seva.shared.logging import logger

from .session_manager import SessionManager
from .tokens import new_csrf_token


class CsrfGuard:
    """Anti-forgery tokens bound one-to-one to a server-side session."""

    def __init__(self, *, sessions: SessionManager, ttl_s: int) -> None:
        self._sessions = sessions
        self._ttl_s = ttl_s
        self._clock: Callable[[], datetime] = sessions.now

    def _age(self, session: Session) -> float | None:
        if not session.csrf_token or session.csrf_token_created_at is None:
            return None
        return (self._clock() - session.csrf_token_created_at).total_seconds()

    def _is_live(self, session: Session) -> bool:
        age = self._age(session)
        return age is not None and age <= self._ttl_s

    def issue(self, session: Session) -> str:
        if self._is_live(session):
            return session.csrf_token  # type: ignore[return-value]
        session.csrf_token = new_csrf_token()
        session.csrf_token_created_at = self._clock()
        self._sessions.save(session)
        return session.csrf_token

    def validate(self, session: Session | None, presented: str | None) -> bool:
        if session is None or not presented or not self._is_live(session):
            return False
        return hmac.compare_digest(
            session.csrf_token.encode("utf-8"),  # type: ignore[union-attr]
            presented.encode("utf-8"),
        )

    def require(self, session: Session | None, presented: str | None) -> None:
        if not self.validate(session, presented):
            logger.warning("csrf: token rejected")
            raise CsrfError()

    def expires_in(self, session: Session) -> int:
        age = self._age(session)
        if age is None:
            return 0
        return max(0, int(self._ttl_s - age))


__all__ = ["CsrfGuard"]
