# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Loguru logger bound to the request correlation id.

Every record passes through :func:`sanitize_record`, so salt keys, session ids,
CSRF tokens and donor PAN/phone values never reach a sink unmasked.
"""

from .logger import (
    clear_correlation_id,
    get_correlation_id,
    logger,
    set_correlation_id,
    setup_logging,
)
from .sensitive_filter import REDACTED, sanitize_message

__all__ = [
    "REDACTED",
    "clear_correlation_id",
    "get_correlation_id",
    "logger",
    "sanitize_message",
    "set_correlation_id",
    "setup_logging",
]
