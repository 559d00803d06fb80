# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from seva.domain.exceptions import InvariantViolationError

_TWO_PLACES = Decimal("0.01")


class DonationStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Frequency(str, Enum):
    ONE_TIME = "one-time"
    MONTHLY = "monthly"
    YEARLY = "yearly"


def to_paise(amount: Decimal) -> int:
    if amount != amount.quantize(_TWO_PLACES):
        raise InvariantViolationError("at most two decimal places", field="amount")
    return int((amount * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_paise(paise: int) -> Decimal:
    return (Decimal(paise) / 100).quantize(_TWO_PLACES)


@dataclass(slots=True, frozen=True)
class DonorDetails:

    name: str
    email: str
    phone: str | None = None
    pan: str | None = None
    address: str | None = None


@dataclass(slots=True, frozen=True)
class DonationRequest:

    donor: DonorDetails
    amount: Decimal
    cause: str
    frequency: Frequency = Frequency.ONE_TIME
    anonymous: bool = False
    updates_consent: bool = False


@dataclass(slots=True, frozen=True)
class DonationIntent:

    id: int
    transaction_id: str
    receipt_number: str
    donor: DonorDetails
    amount: Decimal
    cause: str
    frequency: Frequency
    status: DonationStatus
    created_at: datetime
    anonymous: bool = False
    updates_consent: bool = False
    processor_reference: str | None = None
    failure_reason: str | None = None
    completed_at: datetime | None = None
    callback_processed_at: datetime | None = None

    @property
    def amount_paise(self) -> int:
        return to_paise(self.amount)

    @property
    def is_terminal(self) -> bool:
        return self.status is not DonationStatus.PENDING

    def public_view(self) -> dict[str, object]:
        donor_name = "Anonymous" if self.anonymous else self.donor.name
        return {
            "transaction_id": self.transaction_id,
            "receipt_number": self.receipt_number,
            "donor_name": donor_name,
            "amount": str(self.amount),
            "cause": self.cause,
            "frequency": self.frequency.value,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass(slots=True, frozen=True)
class PaymentRedirect:
    """What the browser needs to continue at the processor."""

    url: str
    payload: str
    checksum: str


@dataclass(slots=True, frozen=True)
class Receipt:

    receipt_number: str
    donation_id: int
    transaction_id: str
    donor_name: str
    amount: Decimal
    cause: str
    date: datetime
    tax_exemption: Decimal
    anonymous: bool = False

    @classmethod
    def for_donation(cls, intent: DonationIntent, *, tax_exemption_rate: float) -> Receipt:
        exemption = (intent.amount * Decimal(str(tax_exemption_rate))).quantize(_TWO_PLACES)
        return cls(
            receipt_number=intent.receipt_number,
            donation_id=intent.id,
            transaction_id=intent.transaction_id,
            donor_name=intent.donor.name,
            amount=intent.amount,
            cause=intent.cause,
            date=intent.completed_at or intent.created_at,
            tax_exemption=exemption,
            anonymous=intent.anonymous,
        )

    def as_dict(self) -> dict[str, object]:
        return {
            "receipt_number": self.receipt_number,
            "transaction_id": self.transaction_id,
            "donor_name": "Anonymous" if self.anonymous else self.donor_name,
            "amount": str(self.amount),
            "cause": self.cause,
            "date": self.date.isoformat(),
            "tax_exemption": str(self.tax_exemption),
        }


@dataclass(slots=True, frozen=True)
class CallbackOutcome:

    transaction_id: str
    processor_status: str
    status: DonationStatus
    applied: bool
