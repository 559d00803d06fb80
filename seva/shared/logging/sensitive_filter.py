# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Masking of credentials and donor identifiers before log lines reach a sink."""

from __future__ import annotations

import re
from typing import Any, NamedTuple

REDACTED = "***REDACTED***"


class _Rule(NamedTuple):
    pattern: re.Pattern[str]
    replacement: str


def _keyed(key: str, value: str, flags: int = re.IGNORECASE) -> _Rule:
    # key=value / key: "value" pairs, value replaced, quoting preserved
    return _Rule(
        re.compile(rf"({key}\s*[:=]\s*['\"]?)({value})(['\"]?)", flags),
        rf"\1{REDACTED}\3",
    )


_PROCESSOR_RULES = (
    _keyed(r"salt[_-]?key", r"[A-Za-z0-9_\-]{8,}"),
    _keyed(r"secret[_-]?key", r"[A-Za-z0-9_\-]{20,}"),
    _keyed(r"x-verify", r"[a-f0-9]{64}(?:###\d+)?"),
    _keyed(r"checksum", r"[a-f0-9]{64}(?:###\d+)?"),
)

_CREDENTIAL_RULES = (
    _keyed(r"password(?:_hash)?", r"[^'\"\s]{6,}"),
    _keyed(r"csrf[_-]?token", r"[A-Za-z0-9_\-.]{20,}"),
    _keyed(r"remember[_-]?token", r"[A-Za-z0-9_\-.]{20,}"),
    _keyed(r"session[_-]?id|SSFSESSID", r"[A-Za-z0-9_\-.]{20,}"),
    _keyed(r"token", r"[A-Za-z0-9_\-.]{20,}"),
    _keyed(r"authorization", r"[^'\"]{10,}"),
    _Rule(re.compile(r"(bearer\s+)[A-Za-z0-9_\-.]{20,}", re.IGNORECASE), rf"\1{REDACTED}"),
    _Rule(
        re.compile(r"(postgresql|postgres|mysql)(\+\w+)?://([^:/]+):([^@]+)@"),
        rf"\1\2://\3:{REDACTED}@",
    ),
)

_DONOR_RULES = (
    _Rule(re.compile(r"\b[A-Z]{5}[0-9]{4}[A-Z]\b"), "*****####*"),
    _Rule(re.compile(r"[A-Za-z0-9._%+-]+@([A-Za-z0-9.-]+\.[A-Za-z]{2,})"), r"***@\1"),
    _Rule(re.compile(r"(?<!\w)\+?(?:91)?[6-9]\d{9}(?!\w)"), "******####"),
)

RULES: tuple[_Rule, ...] = _PROCESSOR_RULES + _CREDENTIAL_RULES + _DONOR_RULES


def sanitize_message(message: str) -> str:
    for rule in RULES:
        message = rule.pattern.sub(rule.replacement, message)
    return message


def sanitize_record(record: dict[str, Any]) -> bool:
    """loguru filter: rewrites the record message in place, never drops it."""
    message = record.get("message")
    if message:
        record["message"] = sanitize_message(message)
    return True


__all__ = ["REDACTED", "RULES", "sanitize_message", "sanitize_record"]
