# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from http import HTTPStatus

from seva.shared.errors.base import DomainError, IntegrityError, NotFoundError


class DonationNotFoundError(NotFoundError):
    default_code = "donation_not_found"


class CallbackVerificationError(IntegrityError):
    default_code = "callback_verification_failed"


class DuplicateTransactionIdError(DomainError):
    default_code = "duplicate_transaction_id"
    default_status = HTTPStatus.CONFLICT


class ReceiptUnavailableError(DomainError):
    default_code = "receipt_unavailable"
    default_status = HTTPStatus.CONFLICT
