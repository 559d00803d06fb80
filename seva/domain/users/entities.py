# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    VOLUNTEER = "volunteer"
    DONOR = "donor"

    @classmethod
    def parse(cls, value: str | None) -> Role | None:
        """Map a client-supplied role name onto a role; ``user`` means donor."""

        if value is None:
            return None
        normalized = value.strip().lower()
        if not normalized:
            return None
        if normalized == "user":
            return cls.DONOR
        return cls(normalized)


@dataclass(slots=True, frozen=True)
class User:

    id: int
    name: str
    email: str
    password_hash: str
    role: Role
    created_at: datetime
    phone: str | None = None
    is_active: bool = True
    email_verified: bool = False
    newsletter_subscribed: bool = False
    failed_login_attempts: int = 0
    lockout_until: datetime | None = None
    last_login: datetime | None = None

    def lockout_remaining(self, now: datetime) -> float:
        if self.lockout_until is None or self.lockout_until <= now:
            return 0.0
        return (self.lockout_until - now).total_seconds()

    def claims(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
        }


@dataclass(slots=True, frozen=True)
class UserStats:

    total: int
    active: int
    verified: int
    by_role: dict[str, int]
    registered_last_30_days: int
