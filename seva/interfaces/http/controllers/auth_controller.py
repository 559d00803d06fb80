# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict
from http import HTTPStatus

from flask import Blueprint, Response, g, jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import MethodNotAllowed

from seva.application.services.csrf_guard import CsrfGuard
from seva.application.services.session_manager import SessionManager
from seva.application.use_cases.users.check_session import CheckSessionUseCase
from seva.application.use_cases.users.get_user_stats import GetUserStatsUseCase
from seva.application.use_cases.users.login_user import LoginUserUseCase
from seva.application.use_cases.users.logout_user import LogoutUserUseCase
from seva.application.use_cases.users.register_user import RegisterUserUseCase
from seva.application.use_cases.users.verify_email import VerifyEmailUseCase
from seva.infrastructure.audit import AuditAction, audit_log
from seva.infrastructure.observability import record_login
from seva.interfaces.http.controllers.base import SessionBoundController
from seva.interfaces.http.cookies import SessionCookies, client_ip, request_payload
from seva.interfaces.http.dto.auth import LoginRequestDTO, RegisterRequestDTO
from seva.shared.errors.base import AppError
from seva.shared.errors.base import ValidationError as InputValidationError
from seva.shared.errors.validation import raise_validation_error
from seva.shared.logging import logger
from seva.shared.middleware.csrf import csrf_protect, presented_csrf_token
from seva.shared.middleware.rate_limit import rate_limit


class AuthController(SessionBoundController):
    def __init__(
        self,
        *,
        sessions: SessionManager,
        csrf_guard: CsrfGuard,
        cookies: SessionCookies,
        login_use_case: LoginUserUseCase,
        logout_use_case: LogoutUserUseCase,
        check_session_use_case: CheckSessionUseCase,
        register_use_case: RegisterUserUseCase,
        verify_email_use_case: VerifyEmailUseCase,
        user_stats_use_case: GetUserStatsUseCase,
    ) -> None:
        super().__init__(sessions=sessions, csrf_guard=csrf_guard, cookies=cookies)
        self._login_use_case = login_use_case
        self._logout_use_case = logout_use_case
        self._check_session_use_case = check_session_use_case
        self._register_use_case = register_use_case
        self._verify_email_use_case = verify_email_use_case
        self._user_stats_use_case = user_stats_use_case
        self._actions: dict[str, tuple[tuple[str, ...], Callable[[], tuple[Response, int]]]] = {
            "csrf_token": (("GET",), self.csrf_token),
            "login": (("POST",), self.login),
            "logout": (("POST",), self.logout),
            "check_session": (("GET",), self.check_session),
            "register": (("POST",), self.register),
            "verify_email": (("GET",), self.verify_email),
            "user_stats": (("GET",), self.user_stats),
        }

    def dispatch(self) -> tuple[Response, int]:
        action = request.args.get("action", "")
        entry = self._actions.get(action)
        if entry is None:
            raise InputValidationError("invalid_action", context={"action": action[:32]})
        methods, handler = entry
        if request.method not in methods:
            raise MethodNotAllowed(valid_methods=list(methods))
        return handler()

    @rate_limit(limit=30, window_seconds=60.0)
    def csrf_token(self) -> tuple[Response, int]:
        session = self._current_session()
        token = self._csrf_guard.issue(session)
        response = jsonify(
            {
                "success": True,
                "csrf_token": token,
                "expires_in": self._csrf_guard.expires_in(session),
            }
        )
        self._cookies.attach_session(response, session)
        return response, HTTPStatus.OK

    @rate_limit(limit=10, window_seconds=60.0)
    @csrf_protect
    def login(self) -> tuple[Response, int]:
        try:
            dto = LoginRequestDTO.model_validate(request_payload())
        except ValidationError as exc:
            raise_validation_error(exc)

        ip_address = client_ip()
        try:
            result = self._login_use_case.execute(
                str(dto.email),
                dto.password,
                requested_role=dto.user_type,
                current_session=self._current_session(),
                remember_me=dto.remember_me,
            )
        except AppError as exc:
            record_login(exc.code)
            audit_log(
                AuditAction.LOGIN_LOCKED if exc.code == "account_locked" else AuditAction.LOGIN_FAILED,
                user_id=None,
                ip_address=ip_address,
                details={"email": str(dto.email), "error": exc.code},
                success=False,
            )
            raise

        g.user_id = result.user.id
        g.web_session = result.session
        record_login("success")
        audit_log(
            AuditAction.LOGIN_SUCCESS,
            user_id=result.user.id,
            ip_address=ip_address,
            details={"role": result.user.role.value, "remember_me": dto.remember_me},
            success=True,
        )

        response = jsonify(
            {
                "success": True,
                "user": result.user.claims(),
                "redirect_url": result.redirect_url,
                "csrf_token": result.csrf_token,
            }
        )
        self._cookies.attach_session(response, result.session)
        if result.remember_token:
            self._cookies.attach_remember(response, result.remember_token)
        logger.info(f"auth.login: ok user_id={result.user.id} role={result.user.role.value}")
        return response, HTTPStatus.OK

    def logout(self) -> tuple[Response, int]:
        session = self._sessions.load(self._cookies.session_id())
        if session is not None:
            self._csrf_guard.require(session, presented_csrf_token())

        self._logout_use_case.execute(session, self._cookies.remember_token())

        audit_log(
            AuditAction.LOGOUT,
            user_id=session.user_id if session else None,
            ip_address=client_ip(),
            details={},
            success=True,
        )

        response = jsonify({"success": True})
        self._cookies.clear(response)
        logger.info("auth.logout: ok")
        return response, HTTPStatus.OK

    def check_session(self) -> tuple[Response, int]:
        result = self._check_session_use_case.execute(
            self._cookies.session_id(), self._cookies.remember_token()
        )
        if not result.authenticated or result.session is None:
            payload: dict[str, object] = {"success": True, "authenticated": False}
            if result.expired:
                payload["reason"] = "session_expired"
                audit_log(
                    AuditAction.SESSION_EXPIRED, ip_address=client_ip(), details={}, success=True
                )
            response = jsonify(payload)
            if result.expired:
                self._cookies.clear(response)
            return response, HTTPStatus.OK

        session = result.session
        g.user_id = session.user_id
        payload = {
            "success": True,
            "authenticated": True,
            "user": session.claims(),
            "session_info": {
                "expires_in": result.expires_in,
                "last_activity": session.last_activity_at.isoformat(),
            },
        }
        if result.csrf_token:
            payload["csrf_token"] = result.csrf_token
        response = jsonify(payload)
        if result.restored:
            audit_log(
                AuditAction.SESSION_RESTORED,
                user_id=session.user_id,
                ip_address=client_ip(),
                details={},
                success=True,
            )
            self._cookies.attach_session(response, session)
        return response, HTTPStatus.OK

    @rate_limit(limit=5, window_seconds=60.0)
    @csrf_protect
    def register(self) -> tuple[Response, int]:
        try:
            dto = RegisterRequestDTO.model_validate(request_payload())
        except ValidationError as exc:
            raise_validation_error(exc)

        try:
            result = self._register_use_case.execute(
                name=dto.name,
                email=str(dto.email),
                password=dto.password,
                role=dto.user_type,
                phone=dto.phone,
                newsletter=dto.newsletter,
            )
        except AppError as exc:
            audit_log(
                AuditAction.REGISTER_FAILED,
                ip_address=client_ip(),
                details={"error": exc.code},
                success=False,
            )
            raise

        audit_log(
            AuditAction.REGISTER,
            user_id=result.user.id,
            ip_address=client_ip(),
            details={"role": result.user.role.value},
            success=True,
        )
        logger.info(f"auth.register: ok user_id={result.user.id}")
        return (
            jsonify(
                {
                    "success": True,
                    "user_id": result.user.id,
                    "email_verification_required": result.email_verification_required,
                }
            ),
            HTTPStatus.CREATED,
        )

    @rate_limit(limit=10, window_seconds=60.0)
    def verify_email(self) -> tuple[Response, int]:
        user = self._verify_email_use_case.execute(request.args.get("token", "").strip())
        audit_log(
            AuditAction.EMAIL_VERIFIED,
            user_id=user.id,
            ip_address=client_ip(),
            details={},
            success=True,
        )
        return jsonify({"success": True}), HTTPStatus.OK

    def user_stats(self) -> tuple[Response, int]:
        session = self._current_session()
        stats = self._user_stats_use_case.execute(session if session.is_authenticated else None)
        audit_log(
            AuditAction.USER_STATS_VIEWED,
            user_id=session.user_id,
            ip_address=client_ip(),
            details={},
            success=True,
        )
        return jsonify({"success": True, "stats": asdict(stats)}), HTTPStatus.OK

    def as_blueprint(self) -> Blueprint:
        bp = Blueprint("auth", __name__)
        bp.add_url_rule("/auth", view_func=self.dispatch, methods=["GET", "POST"])
        return bp
