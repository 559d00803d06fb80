# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from seva.application.services.tokens import hash_token
from seva.domain.users.entities import User
from seva.domain.users.exceptions import InvalidVerificationTokenError
from seva.domain.users.repositories import UserRepository


class VerifyEmailUseCase:
    def __init__(self, *, users: UserRepository) -> None:
        self._users = users

    def execute(self, token: str) -> User:
        if not token:
            raise InvalidVerificationTokenError()
        user = self._users.mark_email_verified(hash_token(token))
        if user is None:
            raise InvalidVerificationTokenError()
        return user
