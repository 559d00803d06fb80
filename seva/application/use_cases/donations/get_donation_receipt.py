# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from seva.domain.donations.entities import DonationStatus, Receipt
from seva.domain.donations.exceptions import DonationNotFoundError, ReceiptUnavailableError
from seva.domain.donations.repositories import DonationRepository


class GetDonationReceiptUseCase:
    """Receipts exist only for completed donations."""

    def __init__(self, *, donations: DonationRepository, tax_exemption_rate: float) -> None:
        self._donations = donations
        self._tax_exemption_rate = tax_exemption_rate

    def execute(self, transaction_id: str) -> Receipt:
        intent = self._donations.find_by_transaction_id(transaction_id.strip())
        if intent is None:
            raise DonationNotFoundError()
        if intent.status is not DonationStatus.COMPLETED:
            raise ReceiptUnavailableError(context={"status": intent.status.value})
        return Receipt.for_donation(intent, tax_exemption_rate=self._tax_exemption_rate)
