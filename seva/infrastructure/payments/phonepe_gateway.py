# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx

from seva.application.services.checksum import status_path
from seva.domain.donations.repositories import PaymentGateway
from seva.infrastructure.resilience import (
    CircuitBreaker,
    CircuitOpenError,
    default_breaker,
    resilient_call,
)
from seva.shared.config.settings import PaymentConfig, ResilienceConfig
from seva.shared.errors.base import DependencyError
from seva.shared.logging import logger


class PhonePeGateway(PaymentGateway):
    """Talks to the processor's hosted checkout API: pay requests and status checks."""

    def __init__(
        self,
        *,
        config: PaymentConfig,
        resilience: ResilienceConfig,
        breaker: CircuitBreaker | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._timeout = resilience.default_timeout
        self._breaker = breaker or default_breaker()
        self._transport = transport

    def _post(self, client: httpx.Client, payload: str, checksum: str) -> httpx.Response:
        response = client.post(
            self._config.pay_path,
            json={"request": payload},
            headers={"X-VERIFY": checksum, "Content-Type": "application/json"},
        )
        if response.status_code >= 500:
            response.raise_for_status()
        return response

    def _get_status(self, client: httpx.Client, path: str, checksum: str) -> httpx.Response:
        response = client.get(
            path,
            headers={
                "X-VERIFY": checksum,
                "X-MERCHANT-ID": self._config.merchant_id,
                "Accept": "application/json",
            },
        )
        if response.status_code >= 500:
            response.raise_for_status()
        return response

    def _send(
        self, send: Callable[..., httpx.Response], *args: str, what: str
    ) -> tuple[int, dict[str, Any]]:
        base_url = self._config.processor_base_url()
        try:
            with httpx.Client(
                base_url=base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                response = resilient_call(
                    send,
                    client,
                    *args,
                    breaker=self._breaker,
                    retry_on=(httpx.TransportError, httpx.HTTPStatusError),
                )
        except CircuitOpenError as exc:
            raise DependencyError("payment_processor_unavailable") from exc
        except httpx.HTTPError as exc:
            logger.opt(exception=exc).error(f"phonepe: {what} request failed url={base_url}")
            raise DependencyError("payment_processor_unavailable") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise DependencyError("payment_processor_invalid_response") from exc
        if not isinstance(body, dict):
            raise DependencyError("payment_processor_invalid_response")
        return response.status_code, body

    def initiate(self, payload: str, checksum: str) -> str:
        status_code, body = self._send(self._post, payload, checksum, what="pay")

        redirect = (
            ((body.get("data") or {}).get("instrumentResponse") or {}).get("redirectInfo") or {}
        ).get("url")
        if not body.get("success") or not redirect:
            logger.warning(
                f"phonepe: pay request rejected status={status_code} code={body.get('code')}"
            )
            raise DependencyError(
                "payment_processor_rejected", context={"code": body.get("code")}
            )
        return str(redirect)

    def check_status(self, transaction_id: str, checksum: str) -> dict[str, Any]:
        path = status_path(self._config.merchant_id, transaction_id)
        status_code, body = self._send(self._get_status, path, checksum, what="status")

        # a declined payment is still a well-formed answer: success=false with a code
        if status_code != 200 or "success" not in body or not body.get("code"):
            logger.warning(
                f"phonepe: status check rejected txn={transaction_id} "
                f"status={status_code} code={body.get('code')}"
            )
            raise DependencyError(
                "payment_processor_rejected", context={"code": body.get("code")}
            )
        return body


__all__ = ["PhonePeGateway"]
