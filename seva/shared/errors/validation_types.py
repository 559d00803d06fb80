# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from enum import Enum


class ValidationErrorType(str, Enum):
    MISSING = "missing"
    NAME_TOO_SHORT = "name_too_short"
    PASSWORD_TOO_SHORT = "password_too_short"
    PASSWORD_NO_UPPERCASE = "password_no_uppercase"
    PASSWORD_NO_LOWERCASE = "password_no_lowercase"
    PASSWORD_NO_DIGIT = "password_no_digit"
    PASSWORD_MISMATCH = "password_mismatch"
    PHONE_INVALID = "phone_invalid"
    PAN_INVALID = "pan_invalid"
    ROLE_INVALID = "role_invalid"
    CAUSE_INVALID = "cause_invalid"
    AMOUNT_OUT_OF_RANGE = "amount_out_of_range"
    AMOUNT_PRECISION = "amount_precision"


__all__ = ["ValidationErrorType"]
