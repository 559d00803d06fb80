# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""PhonePe style request/response signing."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
from typing import Any

_SEPARATOR = "###"
STATUS_PATH = "/pg/v1/status"


def status_path(merchant_id: str, transaction_id: str) -> str:
    return f"{STATUS_PATH}/{merchant_id}/{transaction_id}"


class ChecksumError(ValueError):
    pass


class PhonePeChecksum:
    def __init__(self, *, salt_key: str, salt_index: int) -> None:
        self._salt_key = salt_key
        self._salt_index = salt_index

    def _sign(self, material: str) -> str:
        digest = hashlib.sha256((material + self._salt_key).encode("utf-8")).hexdigest()
        return f"{digest}{_SEPARATOR}{self._salt_index}"

    @staticmethod
    def encode_payload(payload: dict[str, Any]) -> str:
        raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        return base64.b64encode(raw).decode("ascii")

    @staticmethod
    def decode_payload(encoded: str) -> dict[str, Any]:
        try:
            decoded = json.loads(base64.b64decode(encoded, validate=True))
        except (binascii.Error, ValueError) as exc:
            raise ChecksumError("payload is not base64 encoded JSON") from exc
        if not isinstance(decoded, dict):
            raise ChecksumError("payload is not a JSON object")
        return decoded

    def sign_request(self, encoded_payload: str, endpoint_path: str) -> str:
        return self._sign(encoded_payload + endpoint_path)

    def sign_status_check(self, merchant_id: str, transaction_id: str) -> str:
        return self._sign(status_path(merchant_id, transaction_id))

    def sign_response(self, encoded_response: str) -> str:
        return self._sign(encoded_response)

    def verify_response(self, encoded_response: str | None, presented: str | None) -> bool:
        if not encoded_response or not presented or not self._salt_key:
            return False
        expected = self.sign_response(encoded_response)
        return hmac.compare_digest(expected.encode("utf-8"), presented.strip().encode("utf-8"))


__all__ = ["STATUS_PATH", "ChecksumError", "PhonePeChecksum", "status_path"]
