# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Flask
from flask_cors import CORS

from seva.infrastructure.admin_setup import setup_admin_user
from seva.infrastructure.container import Container, container
from seva.infrastructure.db import init_db
from seva.infrastructure.observability import observe_request
from seva.shared.errors import register_error_handler
from seva.shared.logging import logger, setup_logging
from seva.shared.middleware.request_logger import configure_request_logging


def create_app(app_container: Container | None = None) -> Flask:
    wiring = app_container or container
    config = wiring.config

    init_db()
    setup_logging(debug_mode=config.debug_logging)

    setup_admin_user(config.admin_email)

    app = Flask(__name__)
    register_error_handler(app)
    configure_request_logging(app, on_complete=observe_request)

    app.config.update(SECRET_KEY=config.secret_key)

    cors_kwargs: dict[str, object] = {
        "resources": {
            r"/auth": {"origins": config.security.allowed_origins},
            r"/donations": {"origins": config.security.allowed_origins},
        }
    }
    if any(o != "*" for o in config.security.allowed_origins):
        cors_kwargs["supports_credentials"] = True
    CORS(app, **cors_kwargs)

    app.register_blueprint(wiring.misc_controller.as_blueprint())
    app.register_blueprint(wiring.auth_controller.as_blueprint())
    app.register_blueprint(wiring.donations_controller.as_blueprint())
    app.register_blueprint(wiring.payment_callback_controller.as_blueprint())

    @app.after_request
    def _add_security_headers(resp):
        resp.headers.setdefault("X-Frame-Options", "DENY")
        resp.headers.setdefault("Referrer-Policy", "no-referrer")
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("Cross-Origin-Opener-Policy", "same-origin")
        resp.headers.setdefault(
            "Permissions-Policy",
            "geolocation=(), microphone=(), camera=(), usb=(), magnetometer=(), gyroscope=()",
        )
        resp.headers.setdefault("X-Permitted-Cross-Domain-Policies", "none")
        # Session and CSRF bearing responses must never be cached by intermediaries.
        resp.headers.setdefault("Cache-Control", "no-store")

        if config.security.enable_hsts:
            resp.headers.setdefault(
                "Strict-Transport-Security",
                "max-age=31536000; includeSubDomains; preload",
            )

        return resp

    logger.info("Flask app initialized")
    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=True)
