# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from seva.domain.donations.entities import DonationIntent
from seva.domain.donations.exceptions import DonationNotFoundError
from seva.domain.donations.repositories import DonationRepository


class GetDonationStatusUseCase:
    def __init__(self, *, donations: DonationRepository) -> None:
        self._donations = donations

    def execute(self, transaction_id: str) -> DonationIntent:
        intent = self._donations.find_by_transaction_id(transaction_id.strip())
        if intent is None:
            raise DonationNotFoundError()
        return intent
