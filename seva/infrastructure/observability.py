# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from seva.shared.config import load_config

_config = load_config()

REQUEST_LATENCY = Histogram(
    "seva_request_latency_seconds",
    "Request latency",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10),
)
REQUEST_COUNTER = Counter(
    "seva_requests_total",
    "Number of processed requests",
    labelnames=("endpoint", "status"),
)
LOGIN_COUNTER = Counter(
    "seva_login_attempts_total",
    "Login attempts by outcome",
    labelnames=("outcome",),
)
CALLBACK_COUNTER = Counter(
    "seva_payment_callbacks_total",
    "Payment callbacks by outcome",
    labelnames=("outcome",),
)
DONATION_INTENT_COUNTER = Counter(
    "seva_donation_intents_total",
    "Donation intents created",
    labelnames=("cause",),
)


def metrics_enabled() -> bool:
    return _config.observability.metrics_enabled


def record_login(outcome: str) -> None:
    if metrics_enabled():
        LOGIN_COUNTER.labels(outcome=outcome).inc()


def record_callback(outcome: str) -> None:
    if metrics_enabled():
        CALLBACK_COUNTER.labels(outcome=outcome).inc()


def record_intent(cause: str) -> None:
    if metrics_enabled():
        DONATION_INTENT_COUNTER.labels(cause=cause).inc()


def observe_request(endpoint: str, status: int, duration: float) -> None:
    if not metrics_enabled():
        return
    REQUEST_LATENCY.observe(duration)
    REQUEST_COUNTER.labels(endpoint=endpoint, status=str(status)).inc()


def render_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST


__all__ = [
    "CALLBACK_COUNTER",
    "DONATION_INTENT_COUNTER",
    "LOGIN_COUNTER",
    "REQUEST_COUNTER",
    "REQUEST_LATENCY",
    "record_callback",
    "record_intent",
    "record_login",
    "render_metrics",
    "observe_request",
]
