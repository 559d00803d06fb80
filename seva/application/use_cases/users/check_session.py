# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from dataclasses import dataclass

from seva.application.services.csrf_guard import CsrfGuard
from seva.application.services.session_manager import SessionManager
from seva.application.services.tokens import hash_token
from seva.domain.sessions.entities import Session
from seva.domain.users.repositories import RememberTokenRepository, UserRepository
from seva.shared.logging import logger


@dataclass(slots=True, frozen=True)
class SessionCheckResult:

    authenticated: bool
    session: Session | None = None
    expires_in: int = 0
    expired: bool = False
    restored: bool = False
    csrf_token: str | None = None


class CheckSessionUseCase:
    def __init__(
        self,
        *,
        sessions: SessionManager,
        users: UserRepository,
        remember_tokens: RememberTokenRepository,
        csrf_guard: CsrfGuard,
    ) -> None:
        self._sessions = sessions
        self._users = users
        self._remember_tokens = remember_tokens
        self._csrf_guard = csrf_guard

    def execute(
        self, session_id: str | None, remember_token: str | None = None
    ) -> SessionCheckResult:
        session = self._sessions.load(session_id)
        expired = False
        if session is not None and self._sessions.is_expired(session):
            self._sessions.destroy(session)
            expired = session.is_authenticated
            session = None

        if session is not None and session.is_authenticated:
            self._sessions.touch(session)
            return SessionCheckResult(
                authenticated=True,
                session=session,
                expires_in=self._sessions.expires_in(session),
            )

        if remember_token:
            restored = self._restore(session, remember_token)
            if restored is not None:
                return restored

        return SessionCheckResult(authenticated=False, expired=expired)

    def _restore(
        self, previous: Session | None, remember_token: str
    ) -> SessionCheckResult | None:
        now = self._sessions.now()
        user_id = self._remember_tokens.find_user_id(hash_token(remember_token), now)
        if user_id is None:
            return None
        user = self._users.find_by_id(user_id)
        if user is None or not user.is_active:
            return None

        session = self._sessions.start_authenticated(previous, user)
        csrf_token = self._csrf_guard.issue(session)
        self._users.update_last_login(user.id, now)
        logger.info(f"auth.check_session: restored from remember token user_id={user.id}")
        return SessionCheckResult(
            authenticated=True,
            session=session,
            expires_in=self._sessions.expires_in(session),
            restored=True,
            csrf_token=csrf_token,
        )
