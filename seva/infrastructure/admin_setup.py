# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from sqlalchemy import select

from seva.infrastructure.audit import AuditAction, audit_log
from seva.infrastructure.db.models import User
from seva.infrastructure.db.session import session_scope
from seva.shared.config import load_config
from seva.shared.logging import logger


class AdminSetup:
    @staticmethod
    def setup_admin_user(admin_email: str | None = None) -> bool:
        """Promote the ``ADMIN_EMAIL`` account; never creates accounts or passwords."""

        email = (admin_email or load_config().admin_email or "").strip().lower()
        if not email:
            logger.info("admin_setup: No ADMIN_EMAIL configured, skipping admin setup")
            return False

        with session_scope() as session:
            user = session.scalars(select(User).where(User.email == email)).first()
            if user is None:
                logger.warning(
                    "admin_setup: ADMIN_EMAIL account not registered yet, "
                    "it will be promoted on the next start"
                )
                return False
            if user.role == "admin":
                logger.info(f"admin_setup: user_id={user.id} already has admin privileges")
                return False
            user.role = "admin"
            user_id = user.id

        logger.info(f"admin_setup: Granted admin privileges to user_id={user_id}")
        audit_log(AuditAction.ADMIN_PROMOTED, user_id=user_id, details={}, success=True)
        return True


def setup_admin_user(admin_email: str | None = None) -> bool:
    return AdminSetup.setup_admin_user(admin_email)


__all__ = [
    "AdminSetup",
    "setup_admin_user",
]
