# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Notification adapters; delivery is a log line until a mail transport is wired in."""

from __future__ import annotations

from seva.domain.donations.entities import DonationIntent, Receipt
from seva.domain.donations.repositories import ReceiptNotifier
from seva.domain.users.entities import User
from seva.domain.users.repositories import AccountNotifier
from seva.shared.logging import logger


class LogReceiptNotifier(ReceiptNotifier):
    def send_receipt(self, receipt: Receipt, intent: DonationIntent) -> None:
        logger.info(
            f"notify.receipt: receipt={receipt.receipt_number} txn={receipt.transaction_id} "
            f"amount={receipt.amount} tax_exemption={receipt.tax_exemption} "
            f"to={intent.donor.email}"
        )

    def send_failure_notice(self, intent: DonationIntent, reason: str | None) -> None:
        logger.info(
            f"notify.failure: txn={intent.transaction_id} reason={reason} to={intent.donor.email}"
        )


class LogAccountNotifier(AccountNotifier):
    """Records that a verification mail is due; the raw token is never logged.

    It cannot deliver the link, so the container refuses to pair it with
    ``EMAIL_VERIFICATION_REQUIRED``.
    """

    delivers_tokens = False

    def send_verification(self, user: User, token: str) -> None:
        logger.info(f"notify.verification: user_id={user.id} to={user.email}")


__all__ = ["LogAccountNotifier", "LogReceiptNotifier"]
