"""Use-case for ending a session."""

from __future__ import annotations

from seva.application.services.session_manager import SessionManager
from seva.application.services.tokens import hash_token
from seva.domain.sessions.entities import Session
from seva.domain.users.repositories import RememberTokenRepository


class LogoutUserUseCase:
    def __init__(
        self, *, sessions: SessionManager, remember_tokens: RememberTokenRepository
    ) -> None:
        self._sessions = sessions
        self._remember_tokens = remember_tokens

    def execute(self, session: Session | None, remember_token: str | None = None) -> None:
        self._sessions.destroy(session)
        if remember_token:
            self._remember_tokens.delete(hash_token(remember_token))
