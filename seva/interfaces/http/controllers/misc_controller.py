# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Blueprint, Response, jsonify

from seva.infrastructure.health import health_report
from seva.infrastructure.observability import render_metrics


class MiscController:
    def as_blueprint(self) -> Blueprint:
        bp = Blueprint("misc", __name__)
        bp.add_url_rule("/health", view_func=self.health, methods=["GET"])
        bp.add_url_rule("/metrics", view_func=self.metrics, methods=["GET"])
        return bp

    def health(self):
        body, status = health_report()
        return jsonify(body), status

    def metrics(self):
        body, content_type = render_metrics()
        return Response(body, content_type=content_type)
