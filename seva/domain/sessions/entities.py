# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class Session:
    """Server-side session state; ``user_id`` is empty until login."""

    session_id: str
    created_at: datetime
    last_activity_at: datetime
    user_id: int | None = None
    role: str | None = None
    user_email: str | None = None
    user_name: str | None = None
    csrf_token: str | None = None
    csrf_token_created_at: datetime | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def idle_seconds(self, now: datetime) -> float:
        return (now - self.last_activity_at).total_seconds()

    def claims(self) -> dict[str, object]:
        return {
            "id": self.user_id,
            "name": self.user_name,
            "email": self.user_email,
            "role": self.role,
        }
