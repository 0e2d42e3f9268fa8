# -*- coding: utf-8 -*-
"""Crypto helpers for journal content.

This module encapsulates *stateless* cryptographic helpers: key derivation
from a user id, AES-GCM encryption of a single text payload, and the
classifier that tells legacy plaintext apart from stored ciphertext. It
does **not** perform any database I/O and never logs.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Generic, Optional, TypeVar, Union
import base64
import binascii
import re
import secrets
import threading

from cryptography.exceptions import InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import CryptoError, IntegrityFailure, KeyUnavailable, MalformedPayload

# ---------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------

# Shared by every user; changing it orphans all stored ciphertext.
KDF_SALT = b"journal-encryption-salt"
KDF_ITERATIONS = 100_000
KEY_LEN = 32

NONCE_LEN = 12
TAG_LEN = 16
MIN_PAYLOAD_LEN = NONCE_LEN + TAG_LEN

# Prefix on every newly written ciphertext. ':' is outside the base64
# alphabet, so an untagged legacy ciphertext can never start with it.
FORMAT_TAG = "mj1:"

# Some older encrypted outputs start with this even though they are
# followed by whitespace-bearing data.
LEGACY_MARKER = "eyJ"

_WHITESPACE_RE = re.compile(r"\s")


# ---------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class DerivedKey:
    """A 256-bit AES-GCM key derived from a user id.

    The raw bytes are kept out of ``repr`` and only exposed through
    :meth:`aead`, so the key cannot be handed to anything but the cipher.
    """

    _material: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if len(self._material) != KEY_LEN:
            raise KeyUnavailable(f"Derived key must be {KEY_LEN} bytes")

    def aead(self) -> AESGCM:
        """Return an AES-GCM instance bound to this key."""
        try:
            return AESGCM(self._material)
        except UnsupportedAlgorithm as exc:
            raise KeyUnavailable("AES-GCM is not supported by this backend") from exc


T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome of a crypto call."""

    value: T


@dataclass(frozen=True)
class Err:
    """Failed outcome of a crypto call."""

    error: CryptoError


Outcome = Union[Ok, Err]


# ---------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------

def _check_user_id(user_id: object) -> None:
    if not isinstance(user_id, str) or not user_id:
        raise ValueError("user_id must be a non-empty string")


def derive_key(user_id: str) -> DerivedKey:
    """Derive the content key for *user_id* with PBKDF2-HMAC-SHA256.

    The same user id always gives the same key; there is no key store.
    An empty or non-string id is a caller error and raises ``ValueError``.
    """
    _check_user_id(user_id)
    try:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LEN,
            salt=KDF_SALT,
            iterations=KDF_ITERATIONS,
        )
        return DerivedKey(kdf.derive(user_id.encode("utf-8")))
    except UnsupportedAlgorithm as exc:
        raise KeyUnavailable("PBKDF2-HMAC-SHA256 is not supported by this backend") from exc


def try_derive_key(user_id: str) -> Outcome:
    """Like :func:`derive_key` but returns ``Ok``/``Err`` instead of raising."""
    try:
        return Ok(derive_key(user_id))
    except CryptoError as exc:
        return Err(exc)
    except ValueError as exc:
        return Err(KeyUnavailable(str(exc)))


class KeyCache:
    """Memoized ``user_id -> DerivedKey`` mapping.

    Owned by a session and emptied through :meth:`invalidate` on sign-out.
    """

    def __init__(self) -> None:
        self._keys: Dict[str, DerivedKey] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> DerivedKey:
        _check_user_id(user_id)
        with self._lock:
            key = self._keys.get(user_id)
        if key is None:
            key = derive_key(user_id)
            with self._lock:
                key = self._keys.setdefault(user_id, key)
        return key

    def try_get(self, user_id: str) -> Outcome:
        try:
            return Ok(self.get(user_id))
        except CryptoError as exc:
            return Err(exc)
        except ValueError as exc:
            return Err(KeyUnavailable(str(exc)))

    def invalidate(self, user_id: Optional[str] = None) -> None:
        """Drop one cached key, or all of them when *user_id* is None."""
        with self._lock:
            if user_id is None:
                self._keys.clear()
            else:
                self._keys.pop(user_id, None)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)


# ---------------------------------------------------------------------
# AEAD helpers
# ---------------------------------------------------------------------

def encrypt_text(plaintext: str, key: DerivedKey) -> str:
    """Encrypt *plaintext*; return base64(nonce || ciphertext || tag)."""
    nonce = secrets.token_bytes(NONCE_LEN)
    ct = key.aead().encrypt(nonce, plaintext.encode("utf-8"), None)
    return base64.b64encode(nonce + ct).decode("ascii")


def decrypt_text(payload: str, key: DerivedKey) -> str:
    """Decrypt a payload produced by :func:`encrypt_text`."""
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedPayload("Payload is not valid base64") from exc
    if len(raw) < MIN_PAYLOAD_LEN:
        raise MalformedPayload(f"Payload shorter than {MIN_PAYLOAD_LEN} bytes")

    nonce, ct = raw[:NONCE_LEN], raw[NONCE_LEN:]
    try:
        data = key.aead().decrypt(nonce, ct, None)
    except InvalidTag as exc:
        raise IntegrityFailure() from exc
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedPayload("Decrypted payload is not UTF-8 text") from exc


def try_encrypt(plaintext: str, key: DerivedKey) -> Outcome:
    try:
        return Ok(encrypt_text(plaintext, key))
    except CryptoError as exc:
        return Err(exc)
    except (UnicodeEncodeError, OverflowError, ValueError) as exc:
        return Err(CryptoError(f"Encryption failed: {exc}"))


def try_decrypt(payload: str, key: DerivedKey) -> Outcome:
    try:
        return Ok(decrypt_text(payload, key))
    except CryptoError as exc:
        return Err(exc)


# ---------------------------------------------------------------------
# Stored value classification
# ---------------------------------------------------------------------

def is_tagged(stored: str) -> bool:
    """True if *stored* carries the explicit ciphertext format tag."""
    return bool(stored) and stored.startswith(FORMAT_TAG)


def looks_encrypted(stored: str) -> bool:
    """Heuristic for untagged values: is *stored* ciphertext or plaintext?

    Natural-language text almost always contains whitespace; the base64
    alphabet never does. Single-word plaintext is misclassified as
    ciphertext and then fails open in the codec.
    """
    if not stored:
        return False
    if _WHITESPACE_RE.search(stored) and not stored.startswith(LEGACY_MARKER):
        return False
    return True
