"""Verification of signed messages in the Rails MessageVerifier format."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json


class InvalidMessageError(ValueError):
    """Raised when a signed message cannot be verified or decoded."""


class MessageVerifier:
    """Checks HMAC-SHA256 signed, base64 encoded JSON string payloads."""

    def __init__(self, key: str) -> None:
        self._key = key.encode()

    def verified(self, msg: str) -> str:
        """Return the string payload of a signed message."""
        if not self._is_valid(msg):
            raise InvalidMessageError("Invalid message")

        data = msg.split("--")[0]

        try:
            raw = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidMessageError(f"Invalid message encoding: {exc}") from exc

        try:
            result = json.loads(raw)
        except ValueError as exc:
            raise InvalidMessageError(f"Invalid message payload: {exc}") from exc

        if not isinstance(result, str):
            raise InvalidMessageError("Message payload is not a string")

        return result

    def _is_valid(self, msg: str) -> bool:
        if not msg:
            return False

        parts = msg.split("--")
        if len(parts) != 2:
            return False

        data, digest = parts
        actual = hmac.new(self._key, data.encode(), hashlib.sha256).hexdigest()
        return hmac.compare_digest(actual.encode(), digest.encode())