from __future__ import annotations

import json

import httpx
import pytest

from seva.infrastructure.payments.phonepe_gateway import PhonePeGateway
from seva.infrastructure.resilience import BreakerState, CircuitBreaker, resilient_call
from seva.shared.config.settings import PaymentConfig, ResilienceConfig
from seva.shared.errors import DependencyError


def _gateway(handler, breaker: CircuitBreaker | None = None) -> PhonePeGateway:
    return PhonePeGateway(
        config=PaymentConfig.model_validate(
            {"PHONEPE_BASE_URL": "https://processor.test", "PHONEPE_MERCHANT_ID": "M1"}
        ),
        resilience=ResilienceConfig.model_validate({}),
        breaker=breaker or CircuitBreaker(failure_threshold=5, reset_timeout=60),
        transport=httpx.MockTransport(handler),
    )


def test_initiate_posts_signed_request_and_returns_redirect() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["verify"] = request.headers["X-VERIFY"]
        seen["body"] = request.content
        return httpx.Response(
            200,
            json={
                "success": True,
                "code": "PAYMENT_INITIATED",
                "data": {"instrumentResponse": {"redirectInfo": {"url": "https://pay.test/x"}}},
            },
        )

    url = _gateway(handler).initiate("eyJhIjoxfQ==", "abc###1")

    assert url == "https://pay.test/x"
    assert seen["url"] == "https://processor.test/pg/v1/pay"
    assert seen["verify"] == "abc###1"
    assert json.loads(seen["body"]) == {"request": "eyJhIjoxfQ=="}  # type: ignore[arg-type]


def test_rejected_request_maps_to_dependency_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"success": False, "code": "BAD_REQUEST"})

    with pytest.raises(DependencyError) as exc_info:
        _gateway(handler).initiate("payload", "sig###1")

    assert exc_info.value.code == "payment_processor_rejected"
    assert exc_info.value.context == {"code": "BAD_REQUEST"}


def test_status_check_gets_signed_status_path() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["verify"] = request.headers["X-VERIFY"]
        seen["merchant"] = request.headers["X-MERCHANT-ID"]
        return httpx.Response(
            200,
            json={"success": False, "code": "PAYMENT_ERROR", "data": {"amount": 50000}},
        )

    body = _gateway(handler).check_status("TXN_1", "def###1")

    assert body["code"] == "PAYMENT_ERROR"
    assert seen == {
        "method": "GET",
        "url": "https://processor.test/pg/v1/status/M1/TXN_1",
        "verify": "def###1",
        "merchant": "M1",
    }


def test_status_check_error_response_is_rejected() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"success": False, "code": "UNAUTHORIZED"})

    with pytest.raises(DependencyError) as exc_info:
        _gateway(handler).check_status("TXN_1", "def###1")

    assert exc_info.value.code == "payment_processor_rejected"


def test_server_errors_are_retried_then_surface() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(503, json={})

    with pytest.raises(DependencyError) as exc_info:
        _gateway(handler).initiate("payload", "sig###1")

    assert exc_info.value.code == "payment_processor_unavailable"
    assert calls["n"] == 3


def test_open_circuit_short_circuits_calls() -> None:
    breaker = CircuitBreaker(failure_threshold=1, reset_timeout=60)
    breaker.on_failure()

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("processor must not be called while the circuit is open")

    with pytest.raises(DependencyError):
        _gateway(handler, breaker).initiate("payload", "sig###1")


def test_resilient_call_returns_first_success() -> None:
    attempts = {"n": 0}

    def flaky() -> str:
        attempts["n"] += 1
        if attempts["n"] < 2:
            raise ConnectionError("reset")
        return "ok"

    breaker = CircuitBreaker(failure_threshold=3, reset_timeout=60)

    assert resilient_call(flaky, breaker=breaker, retry_on=(ConnectionError,)) == "ok"
    assert attempts["n"] == 2
    assert breaker.allow()


def test_breaker_half_open_trial_decides_next_state() -> None:
    breaker = CircuitBreaker(failure_threshold=2, reset_timeout=0.0)
    breaker.on_failure()
    assert breaker.state is BreakerState.CLOSED

    breaker.on_failure()
    assert breaker.state is BreakerState.OPEN

    assert breaker.allow()
    assert breaker.state is BreakerState.HALF_OPEN
    breaker.on_failure()
    assert breaker.state is BreakerState.OPEN

    assert breaker.allow()
    breaker.on_success()
    assert breaker.state is BreakerState.CLOSED
