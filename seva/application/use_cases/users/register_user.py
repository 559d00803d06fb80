# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from seva.application.services.tokens import hash_token, new_opaque_token
from seva.domain.users.entities import Role, User
from seva.domain.users.exceptions import RegistrationDisabledError, UserAlreadyExistsError
from seva.domain.users.repositories import AccountNotifier, PasswordHasher, UserRepository
from seva.shared.config.settings import AuthPolicyConfig


@dataclass(slots=True, frozen=True)
class RegistrationResult:

    user: User
    email_verification_required: bool


class RegisterUserUseCase:
    def __init__(
        self,
        *,
        users: UserRepository,
        password_hasher: PasswordHasher,
        notifier: AccountNotifier,
        policy: AuthPolicyConfig,
    ) -> None:
        self._users = users
        self._password_hasher = password_hasher
        self._notifier = notifier
        self._policy = policy

    def execute(
        self,
        *,
        name: str,
        email: str,
        password: str,
        role: Role = Role.DONOR,
        phone: str | None = None,
        newsletter: bool = False,
    ) -> RegistrationResult:
        if not self._policy.registration_enabled:
            raise RegistrationDisabledError()

        email = email.strip().lower()
        if self._users.find_by_email(email):
            raise UserAlreadyExistsError()

        verification_required = self._policy.require_email_verification
        token = new_opaque_token() if verification_required else None
        user = User(
            id=0,
            name=name.strip(),
            email=email,
            password_hash=self._password_hasher.hash(password),
            role=Role.DONOR if role is Role.ADMIN else role,
            created_at=datetime.now(UTC),
            phone=phone,
            email_verified=not verification_required,
            newsletter_subscribed=newsletter,
        )
        persisted = self._users.add(
            user, verification_token_hash=hash_token(token) if token else None
        )
        if token:
            self._notifier.send_verification(persisted, token)
        return RegistrationResult(
            user=persisted, email_verification_required=verification_required
        )
