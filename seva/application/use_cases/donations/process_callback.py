# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from seva.application.services.checksum import ChecksumError, PhonePeChecksum
from seva.domain.donations.entities import CallbackOutcome
from seva.domain.donations.exceptions import (
    CallbackVerificationError,
    DonationNotFoundError,
)
from seva.domain.donations.repositories import DonationRepository, ReceiptNotifier
from seva.shared.logging import logger

from .settlement import STATUS_MAP, DonationSettlement, map_processor_status


class ProcessPaymentCallbackUseCase:
    """Verify a signed processor callback and finalise its donation exactly once."""

    def __init__(
        self,
        *,
        donations: DonationRepository,
        checksum: PhonePeChecksum,
        notifier: ReceiptNotifier,
        tax_exemption_rate: float,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._donations = donations
        self._checksum = checksum
        self._settlement = DonationSettlement(
            donations=donations,
            notifier=notifier,
            tax_exemption_rate=tax_exemption_rate,
            clock=clock,
        )

    def verify(self, encoded_response: str | None, presented_checksum: str | None) -> dict[str, Any]:
        if not self._checksum.verify_response(encoded_response, presented_checksum):
            logger.warning("payment.callback: checksum verification failed")
            raise CallbackVerificationError()
        try:
            return self._checksum.decode_payload(encoded_response)  # type: ignore[arg-type]
        except ChecksumError as exc:
            logger.warning("payment.callback: signed body is not decodable")
            raise CallbackVerificationError() from exc

    def apply(self, payload: Mapping[str, Any]) -> CallbackOutcome:
        data = payload.get("data")
        if not isinstance(data, Mapping):
            data = {}
        transaction_id = data.get("merchantTransactionId") or payload.get(
            "merchantTransactionId"
        )
        if not transaction_id:
            raise CallbackVerificationError()

        intent = self._donations.find_by_transaction_id(str(transaction_id))
        if intent is None:
            logger.warning(f"payment.callback: unknown transaction txn={transaction_id}")
            raise DonationNotFoundError()

        return self._settlement.settle(
            intent, str(payload.get("code") or ""), data, source="payment.callback"
        )

    def execute(self, encoded_response: str | None, presented_checksum: str | None) -> CallbackOutcome:
        payload = self.verify(encoded_response, presented_checksum)
        return self.apply(payload)


__all__ = ["STATUS_MAP", "ProcessPaymentCallbackUseCase", "map_processor_status"]
