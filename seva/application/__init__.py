# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .services.checksum import PhonePeChecksum
from .services.csrf_guard import CsrfGuard
from .services.password_hashing import WerkzeugPasswordHasher
from .services.session_manager import SessionManager

__all__ = [
    "CsrfGuard",
    "PhonePeChecksum",
    "SessionManager",
    "WerkzeugPasswordHasher",
]
