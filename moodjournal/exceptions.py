# -*- coding: utf-8 -*-
"""Exceptions raised by the content encryption layer."""
from __future__ import annotations

from typing import Optional


class CryptoError(Exception):
    """Base exception for cryptographic operations."""

    def __init__(self, message: str, *, recoverable: Optional[bool] = None):
        super().__init__(message)
        self.recoverable = recoverable


class KeyUnavailable(CryptoError):
    """The underlying primitives could not produce or use a key."""

    def __init__(self, message: str = "Cryptographic primitives unavailable"):
        super().__init__(message, recoverable=False)


class DecryptionError(CryptoError):
    """A stored payload could not be turned back into plaintext."""


class IntegrityFailure(DecryptionError):
    """AEAD tag did not verify (tampered data or wrong key)."""

    def __init__(self, message: str = "Authentication failed - data may be corrupted or tampered with"):
        super().__init__(message, recoverable=False)


class MalformedPayload(DecryptionError):
    """Payload is not valid base64 or is too short to hold nonce + tag."""
