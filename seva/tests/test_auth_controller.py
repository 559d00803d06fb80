from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from flask import Flask

from seva.application.services.csrf_guard import CsrfGuard
from seva.application.services.session_manager import SessionManager
from seva.interfaces.http.controllers.auth_controller import AuthController
from seva.interfaces.http.cookies import SessionCookies
from seva.shared.config.settings import AuthPolicyConfig, SecurityConfig
from seva.shared.errors import register_error_handler

pytestmark = pytest.mark.usefixtures("reset_database")


@pytest.fixture()
def use_cases() -> dict[str, MagicMock]:
    return {
        name: MagicMock()
        for name in (
            "login_use_case",
            "logout_use_case",
            "check_session_use_case",
            "register_use_case",
            "verify_email_use_case",
            "user_stats_use_case",
        )
    }


@pytest.fixture()
def flask_app(
    session_manager: SessionManager, csrf_guard: CsrfGuard, use_cases: dict[str, MagicMock]
) -> Flask:
    app = Flask(__name__)
    register_error_handler(app)
    controller = AuthController(
        sessions=session_manager,
        csrf_guard=csrf_guard,
        cookies=SessionCookies(
            policy=AuthPolicyConfig.model_validate({}),
            security=SecurityConfig.model_validate({}),
        ),
        **use_cases,
    )
    app.register_blueprint(controller.as_blueprint())
    return app


def test_csrf_token_sets_strict_http_only_cookie(flask_app: Flask) -> None:
    with flask_app.test_client() as client:
        response = client.get("/auth?action=csrf_token")

    assert response.status_code == 200
    assert len(response.get_json()["csrf_token"]) == 64
    cookie = response.headers["Set-Cookie"]
    assert cookie.startswith("SSFSESSID=")
    assert "HttpOnly" in cookie
    assert "SameSite=Strict" in cookie


def test_login_checks_csrf_before_touching_credentials(
    flask_app: Flask, use_cases: dict[str, MagicMock]
) -> None:
    with flask_app.test_client() as client:
        response = client.post(
            "/auth?action=login", json={"email": "a@example.org", "password": "x"}
        )

    assert response.status_code == 403
    use_cases["login_use_case"].execute.assert_not_called()


def test_login_invalid_payload_returns_400(
    flask_app: Flask, use_cases: dict[str, MagicMock]
) -> None:
    with flask_app.test_client() as client:
        token = client.get("/auth?action=csrf_token").get_json()["csrf_token"]
        response = client.post(
            "/auth?action=login",
            json={"email": "not-an-email", "password": "", "csrf_token": token},
        )

    assert response.status_code == 400
    payload = response.get_json()
    assert payload["error"] == "validation_error"
    assert set(payload["context"]["fields"]) == {"email", "password"}
    use_cases["login_use_case"].execute.assert_not_called()


def test_wrong_method_is_not_allowed(flask_app: Flask) -> None:
    with flask_app.test_client() as client:
        assert client.get("/auth?action=login").status_code == 405
        assert client.post("/auth?action=csrf_token").status_code == 405


def test_logout_without_session_needs_no_token(
    flask_app: Flask, use_cases: dict[str, MagicMock]
) -> None:
    with flask_app.test_client() as client:
        response = client.post("/auth?action=logout")

    assert response.status_code == 200
    assert response.get_json() == {"success": True}
    use_cases["logout_use_case"].execute.assert_called_once_with(None, None)
