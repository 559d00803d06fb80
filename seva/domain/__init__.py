# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .donations.entities import (
    DonationIntent,
    DonationRequest,
    DonationStatus,
    DonorDetails,
    Frequency,
    PaymentRedirect,
    Receipt,
)
from .exceptions import InvariantViolationError
from .sessions.entities import Session
from .users.entities import Role, User

__all__ = [
    "DonationIntent",
    "DonationRequest",
    "DonationStatus",
    "DonorDetails",
    "Frequency",
    "PaymentRedirect",
    "Receipt",
    "Role",
    "Session",
    "User",
    "InvariantViolationError",
]
