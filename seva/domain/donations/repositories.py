# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from .entities import DonationIntent, DonationStatus, Receipt


class DonationRepository(Protocol):
    def insert_pending(self, intent: DonationIntent) -> DonationIntent:
        """Persist a pending intent; raises ``DuplicateTransactionIdError`` on collision."""
        ...

    def find_by_transaction_id(self, transaction_id: str) -> DonationIntent | None: ...

    def transition_status(
        self,
        transaction_id: str,
        status: DonationStatus,
        *,
        at: datetime,
        processor_reference: str | None = None,
        failure_reason: str | None = None,
    ) -> bool:
        """Move a pending donation to ``status``; False when it was no longer pending."""
        ...


class ReceiptNotifier(Protocol):
    def send_receipt(self, receipt: Receipt, intent: DonationIntent) -> None: ...
    def send_failure_notice(self, intent: DonationIntent, reason: str | None) -> None: ...


class PaymentGateway(Protocol):
    def initiate(self, payload: str, checksum: str) -> str:
        """Submit a signed pay request and return the processor redirect URL."""
        ...

    def check_status(self, transaction_id: str, checksum: str) -> dict[str, Any]:
        """Fetch the processor's view of a transaction: ``success``, ``code``, ``data``."""
        ...
