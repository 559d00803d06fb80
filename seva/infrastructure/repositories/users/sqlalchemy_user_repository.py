# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError

from seva.domain.users.entities import Role, UserStats
from seva.domain.users.entities import User as DomainUser
from seva.domain.users.exceptions import UserAlreadyExistsError
from seva.domain.users.repositories import RememberTokenRepository, UserRepository
from seva.infrastructure.db.models import RememberToken, User
from seva.infrastructure.db.session import session_scope


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _to_domain(row: User) -> DomainUser:
    return DomainUser(
        id=row.id,
        name=row.name,
        email=row.email,
        password_hash=row.password_hash,
        role=Role.parse(row.role) or Role.DONOR,
        created_at=as_utc(row.created_at) or datetime.now(UTC),
        phone=row.phone,
        is_active=row.is_active,
        email_verified=row.email_verified,
        newsletter_subscribed=row.newsletter_subscribed,
        failed_login_attempts=row.failed_login_attempts,
        lockout_until=as_utc(row.lockout_until),
        last_login=as_utc(row.last_login),
    )


class SqlAlchemyUserRepository(UserRepository):
    def find_by_email(self, email: str) -> DomainUser | None:
        with session_scope() as session:
            row = session.scalars(select(User).where(User.email == email.lower())).first()
            return _to_domain(row) if row else None

    def find_by_id(self, user_id: int) -> DomainUser | None:
        with session_scope() as session:
            row = session.get(User, user_id)
            return _to_domain(row) if row else None

    def add(self, user: DomainUser, *, verification_token_hash: str | None = None) -> DomainUser:
        try:
            with session_scope() as session:
                row = User(
                    name=user.name,
                    email=user.email.lower(),
                    phone=user.phone,
                    password_hash=user.password_hash,
                    role=user.role.value,
                    is_active=user.is_active,
                    email_verified=user.email_verified,
                    email_verification_token=verification_token_hash,
                    newsletter_subscribed=user.newsletter_subscribed,
                    created_at=user.created_at,
                )
                session.add(row)
                session.flush()
                session.refresh(row)
                return _to_domain(row)
        except IntegrityError as exc:
            raise UserAlreadyExistsError() from exc

    def increment_failed_attempts(
        self, user_id: int, *, threshold: int, lockout_until: datetime
    ) -> int:
        attempts = User.failed_login_attempts + 1
        with session_scope() as session:
            session.execute(
                update(User)
                .where(User.id == user_id)
                .values(
                    failed_login_attempts=attempts,
                    lockout_until=case(
                        (attempts >= threshold, lockout_until), else_=User.lockout_until
                    ),
                )
            )
            return int(
                session.scalar(select(User.failed_login_attempts).where(User.id == user_id)) or 0
            )

    def reset_failed_attempts(self, user_id: int) -> None:
        with session_scope() as session:
            session.execute(
                update(User)
                .where(User.id == user_id)
                .values(failed_login_attempts=0, lockout_until=None)
            )

    def update_last_login(self, user_id: int, at: datetime) -> None:
        with session_scope() as session:
            session.execute(update(User).where(User.id == user_id).values(last_login=at))

    def mark_email_verified(self, token_hash: str) -> DomainUser | None:
        with session_scope() as session:
            row = session.scalars(
                select(User).where(User.email_verification_token == token_hash)
            ).first()
            if row is None:
                return None
            row.email_verified = True
            row.email_verification_token = None
            session.flush()
            return _to_domain(row)

    def stats(self, since: datetime) -> UserStats:
        with session_scope() as session:
            total = session.scalar(select(func.count(User.id))) or 0
            active = session.scalar(
                select(func.count(User.id)).where(User.is_active.is_(True))
            ) or 0
            verified = session.scalar(
                select(func.count(User.id)).where(User.email_verified.is_(True))
            ) or 0
            recent = session.scalar(
                select(func.count(User.id)).where(User.created_at >= since)
            ) or 0
            by_role = {role.value: 0 for role in Role}
            for role, count in session.execute(
                select(User.role, func.count(User.id)).group_by(User.role)
            ):
                by_role[role] = count
            return UserStats(
                total=total,
                active=active,
                verified=verified,
                by_role=by_role,
                registered_last_30_days=recent,
            )


class SqlAlchemyRememberTokenRepository(RememberTokenRepository):
    def create(self, user_id: int, token_hash: str, expires_at: datetime) -> None:
        with session_scope() as session:
            session.add(RememberToken(user_id=user_id, token_hash=token_hash, expires_at=expires_at))

    def find_user_id(self, token_hash: str, now: datetime) -> int | None:
        with session_scope() as session:
            row = session.scalars(
                select(RememberToken).where(RememberToken.token_hash == token_hash)
            ).first()
            if row is None:
                return None
            if as_utc(row.expires_at) <= now:
                session.delete(row)
                return None
            return row.user_id

    def delete(self, token_hash: str) -> None:
        with session_scope() as session:
            session.execute(delete(RememberToken).where(RememberToken.token_hash == token_hash))

    def purge_expired(self, now: datetime) -> int:
        with session_scope() as session:
            result = session.execute(delete(RememberToken).where(RememberToken.expires_at <= now))
            return result.rowcount or 0
