# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import hashlib
import re
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from decimal import Decimal

from seva.application.services.checksum import PhonePeChecksum
from seva.application.services.tokens import new_receipt_number, new_transaction_id
from seva.domain.donations.entities import (
    DonationIntent,
    DonationRequest,
    DonationStatus,
    PaymentRedirect,
    to_paise,
)
from seva.domain.donations.exceptions import DuplicateTransactionIdError
from seva.domain.donations.repositories import DonationRepository, PaymentGateway
from seva.domain.exceptions import InvariantViolationError
from seva.shared.config.settings import PaymentConfig
from seva.shared.errors.base import AppError, DependencyError
from seva.shared.errors.validation import field_error
from seva.shared.errors.validation_types import ValidationErrorType
from seva.shared.logging import logger

_PAN_PATTERN = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")
MAX_TRANSACTION_ID_ATTEMPTS = 5


@dataclass(slots=True, frozen=True)
class IntentResult:

    intent: DonationIntent
    payment: PaymentRedirect


class CreateDonationIntentUseCase:
    def __init__(
        self,
        *,
        donations: DonationRepository,
        checksum: PhonePeChecksum,
        config: PaymentConfig,
        gateway: PaymentGateway | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._donations = donations
        self._checksum = checksum
        self._config = config
        self._gateway = gateway
        self._clock = clock
        self._phone_pattern = re.compile(config.phone_pattern)

    def _normalize(self, request: DonationRequest) -> DonationRequest:
        amount = request.amount
        if amount < Decimal(str(self._config.min_amount)) or amount > Decimal(
            str(self._config.max_amount)
        ):
            raise field_error(
                "amount",
                ValidationErrorType.AMOUNT_OUT_OF_RANGE,
                min=self._config.min_amount,
                max=self._config.max_amount,
            )
        try:
            to_paise(amount)
        except InvariantViolationError as exc:
            raise field_error("amount", ValidationErrorType.AMOUNT_PRECISION) from exc

        if request.cause not in self._config.causes:
            raise field_error(
                "cause", ValidationErrorType.CAUSE_INVALID, allowed=",".join(self._config.causes)
            )

        donor = request.donor
        phone = None
        if donor.phone:
            phone = re.sub(r"\D", "", donor.phone)
            if not self._phone_pattern.match(phone):
                raise field_error("phone", ValidationErrorType.PHONE_INVALID)

        pan = None
        if donor.pan:
            pan = donor.pan.strip().upper()
            if not _PAN_PATTERN.match(pan):
                raise field_error("pan", ValidationErrorType.PAN_INVALID)

        donor = replace(
            donor,
            name=donor.name.strip(),
            email=donor.email.strip().lower(),
            phone=phone,
            pan=pan,
            address=(donor.address or "").strip() or None,
        )
        return replace(request, donor=donor)

    def _insert(self, request: DonationRequest) -> DonationIntent:
        for attempt in range(1, MAX_TRANSACTION_ID_ATTEMPTS + 1):
            now = self._clock()
            intent = DonationIntent(
                id=0,
                transaction_id=new_transaction_id(self._config.transaction_prefix, now),
                receipt_number=new_receipt_number(self._config.receipt_prefix, now),
                donor=request.donor,
                amount=request.amount,
                cause=request.cause,
                frequency=request.frequency,
                status=DonationStatus.PENDING,
                created_at=now,
                anonymous=request.anonymous,
                updates_consent=request.updates_consent,
            )
            try:
                return self._donations.insert_pending(intent)
            except DuplicateTransactionIdError:
                logger.warning(f"donations.intent: transaction id collision attempt={attempt}")
        raise DependencyError("transaction_id_unavailable")

    def _payload(self, intent: DonationIntent) -> dict[str, object]:
        email_digest = hashlib.md5(intent.donor.email.encode("utf-8")).hexdigest()
        return {
            "merchantId": self._config.merchant_id,
            "merchantTransactionId": intent.transaction_id,
            "merchantUserId": f"USER_{email_digest[:10]}",
            "amount": intent.amount_paise,
            "redirectUrl": self._config.redirect_url,
            "redirectMode": "POST",
            "callbackUrl": self._config.callback_url,
            "paymentInstrument": {"type": "PAY_PAGE"},
        }

    def execute(self, request: DonationRequest) -> IntentResult:
        request = self._normalize(request)
        intent = self._insert(request)

        encoded = self._checksum.encode_payload(self._payload(intent))
        signature = self._checksum.sign_request(encoded, self._config.pay_path)
        url = f"{self._config.processor_base_url()}{self._config.pay_path}"

        if self._gateway is not None:
            try:
                url = self._gateway.initiate(encoded, signature)
            except AppError as exc:
                self._donations.transition_status(
                    intent.transaction_id,
                    DonationStatus.FAILED,
                    at=self._clock(),
                    failure_reason=f"initiation_failed:{exc.code}",
                )
                logger.error(
                    f"donations.intent: processor initiation failed txn={intent.transaction_id}"
                )
                raise

        logger.info(
            f"donations.intent: created txn={intent.transaction_id} "
            f"amount={intent.amount} cause={intent.cause}"
        )
        return IntentResult(
            intent=intent, payment=PaymentRedirect(url=url, payload=encoded, checksum=signature)
        )
