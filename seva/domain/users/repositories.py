# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from .entities import User, UserStats


class UserRepository(Protocol):
    def find_by_email(self, email: str) -> User | None: ...
    def find_by_id(self, user_id: int) -> User | None: ...
    def add(self, user: User, *, verification_token_hash: str | None = None) -> User: ...

    def increment_failed_attempts(
        self, user_id: int, *, threshold: int, lockout_until: datetime
    ) -> int:
        """Atomically bump the counter, arming the lockout once it reaches ``threshold``."""
        ...

    def reset_failed_attempts(self, user_id: int) -> None: ...
    def update_last_login(self, user_id: int, at: datetime) -> None: ...
    def mark_email_verified(self, token_hash: str) -> User | None: ...
    def stats(self, since: datetime) -> UserStats: ...


class RememberTokenRepository(Protocol):
    def create(self, user_id: int, token_hash: str, expires_at: datetime) -> None: ...
    def find_user_id(self, token_hash: str, now: datetime) -> int | None: ...
    def delete(self, token_hash: str) -> None: ...
    def purge_expired(self, now: datetime) -> int: ...


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str: ...
    def verify(self, password: str, hashed: str) -> bool: ...


class AccountNotifier(Protocol):
    def send_verification(self, user: User, token: str) -> None: ...
