# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Retry and circuit breaking for calls to the payment processor."""

from __future__ import annotations

import enum
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from seva.shared.config import load_config
from seva.shared.logging import logger

T = TypeVar("T")


class CircuitOpenError(RuntimeError):
    pass


class BreakerState(enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    """Opens after ``failure_threshold`` consecutive failures.

    Once ``reset_timeout`` seconds have passed a single trial call is let
    through (half-open); its outcome closes or re-opens the circuit.
    """

    failure_threshold: int
    reset_timeout: float
    state: BreakerState = field(default=BreakerState.CLOSED, init=False)
    _failures: int = field(default=0, init=False)
    _opened_at: float = field(default=0.0, init=False)
    _lock: Lock = field(default_factory=Lock, init=False, repr=False)

    def allow(self) -> bool:
        with self._lock:
            if self.state is BreakerState.CLOSED:
                return True
            if self.state is BreakerState.OPEN and (
                time.monotonic() - self._opened_at >= self.reset_timeout
            ):
                self.state = BreakerState.HALF_OPEN
                logger.info("breaker: half-open, allowing a trial call")
                return True
        logger.warning(f"breaker: refusing call state={self.state.value}")
        return False

    def on_success(self) -> None:
        with self._lock:
            self._failures = 0
            self.state = BreakerState.CLOSED

    def on_failure(self) -> None:
        with self._lock:
            self._failures += 1
            if self.state is BreakerState.HALF_OPEN or self._failures >= self.failure_threshold:
                self.state = BreakerState.OPEN
                self._opened_at = time.monotonic()
                logger.error(f"breaker: circuit opened after {self._failures} failure(s)")


def default_breaker() -> CircuitBreaker:
    settings = load_config().resilience
    return CircuitBreaker(
        failure_threshold=settings.circuit_fail_threshold,
        reset_timeout=settings.circuit_reset_timeout,
    )


def _log_retry(state: RetryCallState) -> None:
    error = state.outcome.exception() if state.outcome else None
    logger.warning(
        f"resilience: attempt {state.attempt_number} of "
        f"{getattr(state.fn, '__name__', state.fn)} failed: {type(error).__name__}"
    )


def resilient_call(  # noqa: UP047
    func: Callable[..., T],
    *args: Any,
    breaker: CircuitBreaker | None = None,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    max_retries: int | None = None,
    **kwargs: Any,
) -> T:
    settings = load_config().resilience
    breaker = breaker or default_breaker()
    if not breaker.allow():
        raise CircuitOpenError("circuit breaker is open")

    retries = settings.max_retries if max_retries is None else max_retries
    retrying = Retrying(
        stop=stop_after_attempt(retries + 1),
        wait=wait_exponential(multiplier=settings.backoff_base, max=settings.backoff_cap),
        retry=retry_if_exception_type(retry_on),
        before_sleep=_log_retry,
        reraise=True,
    )
    try:
        result = retrying(func, *args, **kwargs)
    except Exception:
        breaker.on_failure()
        raise
    breaker.on_success()
    return result


__all__ = [
    "BreakerState",
    "CircuitBreaker",
    "CircuitOpenError",
    "default_breaker",
    "resilient_call",
]
