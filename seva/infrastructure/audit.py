# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from seva.shared.logging import get_correlation_id, logger

_REDACTED = "***REDACTED***"
_SENSITIVE_FRAGMENTS = ("password", "token", "checksum", "salt", "phone", "pan", "secret", "key")
_MAX_DETAILS_LEN = 2048


class AuditAction(str, Enum):
    # Authentication
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILED = "login_failed"
    LOGIN_LOCKED = "login_locked"
    LOGOUT = "logout"
    REGISTER = "register"
    REGISTER_FAILED = "register_failed"

    # Sessions
    SESSION_EXPIRED = "session_expired"
    SESSION_RESTORED = "session_restored"
    CSRF_REJECTED = "csrf_rejected"
    EMAIL_VERIFIED = "email_verified"

    # Donations
    DONATION_INTENT_CREATED = "donation_intent_created"
    DONATION_COMPLETED = "donation_completed"
    DONATION_FAILED = "donation_failed"
    CALLBACK_REJECTED = "callback_rejected"
    CALLBACK_DUPLICATE = "callback_duplicate"
    DONATION_VERIFIED = "donation_verified"

    # Admin
    ADMIN_PROMOTED = "admin_promoted"
    USER_STATS_VIEWED = "user_stats_viewed"


def redact(details: Mapping[str, Any]) -> dict[str, Any]:
    """Mask values whose key names a credential or donor identifier, recursively."""

    cleaned: dict[str, Any] = {}
    for key, value in details.items():
        if any(fragment in key.lower() for fragment in _SENSITIVE_FRAGMENTS):
            cleaned[key] = _REDACTED
        elif isinstance(value, Mapping):
            cleaned[key] = redact(value)
        else:
            cleaned[key] = value
    return cleaned


class AuditLogger:
    """Security trail: every entry is logged and, best effort, stored in ``audit_logs``."""

    def log(
        self,
        action: AuditAction,
        *,
        user_id: int | None = None,
        ip_address: str | None = None,
        details: Mapping[str, Any] | None = None,
        success: bool = True,
    ) -> None:
        safe_details = redact(details or {})
        correlation_id = get_correlation_id()
        if correlation_id != "-":
            safe_details.setdefault("request_id", correlation_id)

        line = f"AUDIT {action.value} user_id={user_id} ip={ip_address} success={success}"
        if safe_details:
            line += f" details={safe_details}"
        if success:
            logger.info(line)
        else:
            logger.warning(line)

        self._store(
            timestamp=datetime.now(UTC),
            action=action,
            user_id=user_id,
            ip_address=ip_address,
            success=success,
            details=safe_details,
        )

    @staticmethod
    def _store(
        *,
        timestamp: datetime,
        action: AuditAction,
        user_id: int | None,
        ip_address: str | None,
        success: bool,
        details: dict[str, Any],
    ) -> None:
        from seva.infrastructure.db.models import AuditLog
        from seva.infrastructure.db.session import session_scope

        encoded = json.dumps(details, default=str)[:_MAX_DETAILS_LEN] if details else None
        try:
            with session_scope() as session:
                session.add(
                    AuditLog(
                        timestamp=timestamp,
                        action=action.value,
                        user_id=user_id,
                        ip_address=(ip_address or "")[:64] or None,
                        success=success,
                        details_json=encoded,
                    )
                )
        except SQLAlchemyError as exc:
            logger.warning(f"audit: could not persist {action.value}: {type(exc).__name__}")


audit = AuditLogger()


def audit_log(
    action: AuditAction,
    user_id: int | None = None,
    ip_address: str | None = None,
    details: Mapping[str, Any] | None = None,
    success: bool = True,
) -> None:
    audit.log(action, user_id=user_id, ip_address=ip_address, details=details, success=success)


__all__ = [
    "AuditAction",
    "AuditLogger",
    "audit",
    "audit_log",
    "redact",
]
