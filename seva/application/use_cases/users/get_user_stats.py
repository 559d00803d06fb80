# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from seva.domain.sessions.entities import Session
from seva.domain.users.entities import Role, UserStats
from seva.domain.users.exceptions import AdminRequiredError, AuthenticationRequiredError
from seva.domain.users.repositories import UserRepository


class GetUserStatsUseCase:
    def __init__(self, *, users: UserRepository) -> None:
        self._users = users

    def execute(self, session: Session | None) -> UserStats:
        if session is None:
            raise AuthenticationRequiredError()
        if session.role != Role.ADMIN.value:
            raise AdminRequiredError()
        return self._users.stats(since=datetime.now(UTC) - timedelta(days=30))
