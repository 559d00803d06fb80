# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from http import HTTPStatus

from seva.shared.errors.base import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    LockoutError,
)


class UserAlreadyExistsError(DomainError):
    default_code = "user_already_exists"
    default_status = HTTPStatus.CONFLICT


class InvalidCredentialsError(AuthenticationError):
    default_code = "invalid_credentials"


class AuthenticationRequiredError(AuthenticationError):
    default_code = "authentication_required"


class InsufficientPrivilegesError(AuthorizationError):
    default_code = "insufficient_privileges"


class AccountInactiveError(AuthorizationError):
    default_code = "account_inactive"


class EmailNotVerifiedError(AuthorizationError):
    default_code = "email_not_verified"


class AdminRequiredError(AuthorizationError):
    default_code = "admin_required"


class RegistrationDisabledError(AuthorizationError):
    default_code = "registration_disabled"


class InvalidVerificationTokenError(DomainError):
    default_code = "verification_token_invalid"


class AccountLockedError(LockoutError):
    default_code = "account_locked"

    def __init__(self, lockout_remaining: float = 0) -> None:
        super().__init__(
            context={"lockout_remaining_seconds": max(1, int(round(lockout_remaining)))}
        )
