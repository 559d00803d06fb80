# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

from seva.application.services.checksum import PhonePeChecksum
from seva.domain.donations.entities import CallbackOutcome, DonationIntent
from seva.domain.donations.exceptions import DonationNotFoundError
from seva.domain.donations.repositories import (
    DonationRepository,
    PaymentGateway,
    ReceiptNotifier,
)
from seva.shared.config.settings import PaymentConfig
from seva.shared.errors.base import DependencyError
from seva.shared.logging import logger

from .settlement import DonationSettlement


@dataclass(slots=True, frozen=True)
class VerificationResult:

    outcome: CallbackOutcome
    donation: DonationIntent


class VerifyDonationUseCase:
    """Ask the processor for a pending donation's state when its callback never arrived."""

    def __init__(
        self,
        *,
        donations: DonationRepository,
        gateway: PaymentGateway | None,
        checksum: PhonePeChecksum,
        config: PaymentConfig,
        notifier: ReceiptNotifier,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._donations = donations
        self._gateway = gateway
        self._checksum = checksum
        self._merchant_id = config.merchant_id
        self._settlement = DonationSettlement(
            donations=donations,
            notifier=notifier,
            tax_exemption_rate=config.tax_exemption_rate,
            clock=clock,
        )

    def _reload(self, intent: DonationIntent) -> DonationIntent:
        return self._donations.find_by_transaction_id(intent.transaction_id) or intent

    def execute(self, transaction_id: str) -> VerificationResult:
        intent = self._donations.find_by_transaction_id(transaction_id.strip())
        if intent is None:
            raise DonationNotFoundError()

        if intent.is_terminal:
            logger.debug(f"payment.verify: already {intent.status.value} txn={intent.transaction_id}")
            outcome = CallbackOutcome(intent.transaction_id, "", intent.status, False)
            return VerificationResult(outcome, intent)

        if self._gateway is None:
            raise DependencyError("payment_processor_disabled")

        body = self._gateway.check_status(
            intent.transaction_id,
            self._checksum.sign_status_check(self._merchant_id, intent.transaction_id),
        )
        data = body.get("data")
        outcome = self._settlement.settle(
            intent,
            str(body.get("code") or ""),
            data if isinstance(data, Mapping) else {},
            source="payment.verify",
        )
        return VerificationResult(outcome, self._reload(intent))


__all__ = ["VerificationResult", "VerifyDonationUseCase"]
