# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field, field_validator

from seva.domain.donations.entities import DonationRequest, DonorDetails, Frequency


class DonationRequestDTO(BaseModel):
    donor_name: str = Field(min_length=2, max_length=128)
    donor_email: EmailStr
    donor_phone: str | None = Field(None, max_length=20)
    donor_pan: str | None = Field(None, max_length=10)
    donor_address: str | None = Field(None, max_length=1000)
    amount: Decimal = Field(gt=0, max_digits=12)
    cause: str = Field(min_length=1, max_length=32)
    frequency: Frequency = Frequency.ONE_TIME
    anonymous: bool = False
    updates: bool = False

    @field_validator("donor_name", "cause", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("donor_phone", "donor_pan", "donor_address", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def to_domain(self) -> DonationRequest:
        return DonationRequest(
            donor=DonorDetails(
                name=self.donor_name,
                email=str(self.donor_email),
                phone=self.donor_phone,
                pan=self.donor_pan,
                address=self.donor_address,
            ),
            amount=self.amount,
            cause=self.cause,
            frequency=self.frequency,
            anonymous=self.anonymous,
            updates_consent=self.updates,
        )


class DonationStatusQueryDTO(BaseModel):
    transaction_id: str = Field(min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_\-]+$")
