# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import timedelta

from seva.application.services.csrf_guard import CsrfGuard
from seva.application.services.session_manager import SessionManager
from seva.application.services.tokens import hash_token, new_opaque_token
from seva.domain.sessions.entities import Session
from seva.domain.users.entities import Role, User
from seva.domain.users.exceptions import (
    AccountInactiveError,
    AccountLockedError,
    EmailNotVerifiedError,
    InsufficientPrivilegesError,
    InvalidCredentialsError,
)
from seva.domain.users.repositories import (
    PasswordHasher,
    RememberTokenRepository,
    UserRepository,
)
from seva.shared.config.settings import AuthPolicyConfig
from seva.shared.logging import logger


@dataclass(slots=True, frozen=True)
class LoginResult:

    session: Session
    user: User
    csrf_token: str
    redirect_url: str
    remember_token: str | None = None


class LoginUserUseCase:
    def __init__(
        self,
        *,
        users: UserRepository,
        remember_tokens: RememberTokenRepository,
        password_hasher: PasswordHasher,
        sessions: SessionManager,
        csrf_guard: CsrfGuard,
        policy: AuthPolicyConfig,
    ) -> None:
        self._users = users
        self._remember_tokens = remember_tokens
        self._password_hasher = password_hasher
        self._sessions = sessions
        self._csrf_guard = csrf_guard
        self._policy = policy
        self._dummy_hash = password_hasher.hash(secrets.token_hex(16))

    def execute(
        self,
        email: str,
        password: str,
        *,
        requested_role: Role | None = None,
        current_session: Session | None = None,
        remember_me: bool = False,
    ) -> LoginResult:
        email = email.strip().lower()
        user = self._users.find_by_email(email)
        if user is None:
            # Keep unknown accounts as slow as wrong passwords.
            self._password_hasher.verify(password, self._dummy_hash)
            raise InvalidCredentialsError()

        now = self._sessions.now()
        remaining = user.lockout_remaining(now)
        if remaining > 0:
            raise AccountLockedError(lockout_remaining=remaining)

        if not user.is_active:
            raise AccountInactiveError()

        if self._policy.require_email_verification and not user.email_verified:
            raise EmailNotVerifiedError()

        if not self._password_hasher.verify(password, user.password_hash):
            attempts = self._users.increment_failed_attempts(
                user.id,
                threshold=self._policy.lockout_threshold,
                lockout_until=now + timedelta(seconds=self._policy.lockout_duration_s),
            )
            if attempts >= self._policy.lockout_threshold:
                logger.warning(f"auth.login: account locked user_id={user.id} attempts={attempts}")
            raise InvalidCredentialsError()

        if (
            requested_role is not None
            and requested_role is not Role.DONOR
            and requested_role is not user.role
        ):
            raise InsufficientPrivilegesError(context={"requested_role": requested_role.value})

        self._users.reset_failed_attempts(user.id)
        self._users.update_last_login(user.id, now)

        session = self._sessions.start_authenticated(current_session, user)
        csrf_token = self._csrf_guard.issue(session)

        remember_token = None
        if remember_me:
            self._remember_tokens.purge_expired(now)
            remember_token = new_opaque_token()
            self._remember_tokens.create(
                user.id,
                hash_token(remember_token),
                now + timedelta(days=self._policy.remember_me_days),
            )

        return LoginResult(
            session=session,
            user=user,
            csrf_token=csrf_token,
            redirect_url=self._policy.redirect_for(user.role.value),
            remember_token=remember_token,
        )
