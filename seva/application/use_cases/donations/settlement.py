# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Moves a pending donation to its final state from a processor status code.

Both the signed callback and the operator-triggered status check land here, so
a donation is finalised, and its donor notified, at most once whichever path
arrives first.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from seva.domain.donations.entities import (
    CallbackOutcome,
    DonationIntent,
    DonationStatus,
    Receipt,
)
from seva.domain.donations.repositories import DonationRepository, ReceiptNotifier
from seva.shared.logging import logger

STATUS_MAP: Mapping[str, DonationStatus] = {
    "PAYMENT_SUCCESS": DonationStatus.COMPLETED,
    "PAYMENT_ERROR": DonationStatus.FAILED,
    "PAYMENT_DECLINED": DonationStatus.FAILED,
    "PAYMENT_CANCELLED": DonationStatus.FAILED,
    "PAYMENT_PENDING": DonationStatus.PENDING,
    "INTERNAL_SERVER_ERROR": DonationStatus.PENDING,
}


def map_processor_status(code: str | None) -> DonationStatus:
    return STATUS_MAP.get((code or "").upper(), DonationStatus.FAILED)


class DonationSettlement:
    def __init__(
        self,
        *,
        donations: DonationRepository,
        notifier: ReceiptNotifier,
        tax_exemption_rate: float,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._donations = donations
        self._notifier = notifier
        self._tax_exemption_rate = tax_exemption_rate
        self._clock = clock

    def settle(
        self,
        intent: DonationIntent,
        processor_status: str,
        data: Mapping[str, Any],
        *,
        source: str,
    ) -> CallbackOutcome:
        target = map_processor_status(processor_status)

        paid = data.get("amount")
        if paid is not None and str(paid) != str(intent.amount_paise):
            logger.warning(
                f"{source}: amount mismatch txn={intent.transaction_id} "
                f"expected={intent.amount_paise} received={paid}"
            )

        if target is DonationStatus.PENDING:
            logger.info(
                f"{source}: still pending txn={intent.transaction_id} code={processor_status}"
            )
            return CallbackOutcome(intent.transaction_id, processor_status, intent.status, False)

        now = self._clock()
        reference = data.get("transactionId") or data.get("providerReferenceId")
        failure_reason = None if target is DonationStatus.COMPLETED else processor_status or "unknown"
        won = self._donations.transition_status(
            intent.transaction_id,
            target,
            at=now,
            processor_reference=str(reference) if reference else None,
            failure_reason=failure_reason,
        )
        if not won:
            logger.info(f"{source}: duplicate ignored txn={intent.transaction_id}")
            current = self._donations.find_by_transaction_id(intent.transaction_id)
            status = current.status if current else intent.status
            return CallbackOutcome(intent.transaction_id, processor_status, status, False)

        finalised = replace(
            intent,
            status=target,
            completed_at=now if target is DonationStatus.COMPLETED else None,
            callback_processed_at=now,
            processor_reference=str(reference) if reference else None,
            failure_reason=failure_reason,
        )
        if target is DonationStatus.COMPLETED:
            receipt = Receipt.for_donation(finalised, tax_exemption_rate=self._tax_exemption_rate)
            self._notifier.send_receipt(receipt, finalised)
        else:
            self._notifier.send_failure_notice(finalised, failure_reason)

        logger.info(
            f"{source}: txn={intent.transaction_id} -> {target.value} code={processor_status}"
        )
        return CallbackOutcome(intent.transaction_id, processor_status, target, True)


__all__ = ["STATUS_MAP", "DonationSettlement", "map_processor_status"]
