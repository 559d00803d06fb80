# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Response, request

from seva.domain.sessions.entities import Session
from seva.shared.config.settings import AuthPolicyConfig, SecurityConfig

REMEMBER_COOKIE = "remember_token"


class SessionCookies:
    def __init__(self, *, policy: AuthPolicyConfig, security: SecurityConfig) -> None:
        self._policy = policy
        self._security = security

    def session_id(self) -> str | None:
        return request.cookies.get(self._policy.session_cookie_name) or None

    def remember_token(self) -> str | None:
        return request.cookies.get(REMEMBER_COOKIE) or None

    def attach_session(self, response: Response, session: Session) -> None:
        response.set_cookie(
            self._policy.session_cookie_name,
            session.session_id,
            httponly=True,
            samesite=self._security.cookie_samesite,
            secure=self._security.cookie_secure,
        )

    def attach_remember(self, response: Response, token: str) -> None:
        response.set_cookie(
            REMEMBER_COOKIE,
            token,
            httponly=True,
            samesite=self._security.cookie_samesite,
            secure=self._security.cookie_secure,
            max_age=60 * 60 * 24 * self._policy.remember_me_days,
        )

    def clear(self, response: Response) -> None:
        response.delete_cookie(
            self._policy.session_cookie_name,
            samesite=self._security.cookie_samesite,
            secure=self._security.cookie_secure,
            httponly=True,
        )
        response.delete_cookie(
            REMEMBER_COOKIE,
            samesite=self._security.cookie_samesite,
            secure=self._security.cookie_secure,
            httponly=True,
        )


def client_ip() -> str | None:
    ip_address = request.headers.get("X-Forwarded-For", request.remote_addr)
    if ip_address and "," in ip_address:
        ip_address = ip_address.split(",")[0].strip()
    return ip_address


def request_payload() -> dict:
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        return body
    return request.form.to_dict()


__all__ = ["REMEMBER_COOKIE", "SessionCookies", "client_ip", "request_payload"]
