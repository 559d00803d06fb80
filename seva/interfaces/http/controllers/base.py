# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import g

from seva.application.services.csrf_guard import CsrfGuard
from seva.application.services.session_manager import SessionManager
from seva.domain.sessions.entities import Session
from seva.interfaces.http.cookies import SessionCookies


class SessionBoundController:
    """Resolves the caller's server-side session once per request."""

    def __init__(
        self, *, sessions: SessionManager, csrf_guard: CsrfGuard, cookies: SessionCookies
    ) -> None:
        self._sessions = sessions
        self._csrf_guard = csrf_guard
        self._cookies = cookies

    def _current_session(self) -> Session:
        session = g.get("web_session")
        if session is None:
            session = self._sessions.resolve(self._cookies.session_id())
            if session.is_authenticated:
                self._sessions.touch(session)
            g.web_session = session
            if session.user_id is not None:
                g.user_id = session.user_id
        return session
