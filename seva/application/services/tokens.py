# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime


def new_session_id() -> str:
    return secrets.token_hex(32)


def new_csrf_token() -> str:
    return secrets.token_hex(32)


def new_opaque_token() -> str:
    return secrets.token_hex(32)


def hash_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def new_transaction_id(prefix: str, now: datetime) -> str:
    return f"{prefix}_{now.strftime('%Y%m%d%H%M%S')}_{secrets.token_hex(4).upper()}"


def new_receipt_number(prefix: str, now: datetime) -> str:
    return f"{prefix}{now.strftime('%Y%m%d')}{secrets.randbelow(10_000):04d}"


__all__ = [
    "hash_token",
    "new_csrf_token",
    "new_opaque_token",
    "new_receipt_number",
    "new_session_id",
    "new_transaction_id",
]
