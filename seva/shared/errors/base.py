# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Error taxonomy shared by every layer; translated to HTTP only in ``http.py``."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, ClassVar


@dataclass(slots=True)
class AppError(Exception):
    code: str
    status: HTTPStatus
    context: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        Exception.__init__(self, self.code)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "error": self.code}
        if self.context:
            body["context"] = dict(self.context)
        return body


class DomainError(AppError):
    """Subclasses pin ``default_code``/``default_status``; callers may refine the code."""

    default_code: ClassVar[str] = "domain_error"
    default_status: ClassVar[HTTPStatus] = HTTPStatus.BAD_REQUEST

    def __init__(
        self, code: str | None = None, *, context: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__(
            code=code or self.default_code, status=self.default_status, context=context
        )


class ValidationError(DomainError):
    default_code = "validation_error"


class AuthenticationError(DomainError):
    default_code = "authentication_failed"
    default_status = HTTPStatus.UNAUTHORIZED


class AuthorizationError(DomainError):
    default_code = "forbidden"
    default_status = HTTPStatus.FORBIDDEN


class CsrfError(DomainError):
    default_code = "csrf_token_invalid"
    default_status = HTTPStatus.FORBIDDEN


class LockoutError(DomainError):
    default_code = "locked"
    default_status = HTTPStatus.LOCKED


class NotFoundError(DomainError):
    default_code = "not_found"
    default_status = HTTPStatus.NOT_FOUND


class IntegrityError(DomainError):
    # the body never says which check failed
    default_code = "integrity_check_failed"


class DependencyError(DomainError):
    default_code = "service_unavailable"
    default_status = HTTPStatus.SERVICE_UNAVAILABLE


class RateLimitError(DomainError):
    default_code = "rate_limited"
    default_status = HTTPStatus.TOO_MANY_REQUESTS

    def __init__(self, retry_after: float) -> None:
        self.retry_after = max(1, int(round(retry_after)))
        super().__init__(context={"retry_after": self.retry_after})


__all__ = [
    "AppError",
    "AuthenticationError",
    "AuthorizationError",
    "CsrfError",
    "DependencyError",
    "DomainError",
    "IntegrityError",
    "LockoutError",
    "NotFoundError",
    "RateLimitError",
    "ValidationError",
]
