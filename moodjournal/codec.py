# -*- coding: utf-8 -*-
"""Encrypt/decrypt the ``content`` field of a journal record.

The persistence layer calls :func:`encrypt_entry` right before a write and
:func:`decrypt_entry` right after a read. Every other field passes through
untouched. Failures never propagate: the codec logs them and returns the
best content it has (the original plaintext on encrypt, the stored string
on decrypt).
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional, TypeVar
import dataclasses

from .crypto import (
    FORMAT_TAG,
    Err,
    KeyCache,
    Outcome,
    is_tagged,
    looks_encrypted,
    try_decrypt,
    try_derive_key,
    try_encrypt,
)
from .logging_utils import get_crypto_logger

logger = get_crypto_logger()

R = TypeVar("R")


# ---------------------------------------------------------------------
# Record access
# ---------------------------------------------------------------------

def _is_record(entry: Any) -> bool:
    return isinstance(entry, Mapping) or (dataclasses.is_dataclass(entry) and not isinstance(entry, type))


def _get_content(entry: Any) -> Optional[str]:
    if isinstance(entry, Mapping):
        content = entry.get("content")
    else:
        content = getattr(entry, "content", None)
    return content if isinstance(content, str) else None


def _with_content(entry: R, content: str) -> R:
    """Return a copy of *entry* with ``content`` replaced."""
    if isinstance(entry, Mapping):
        copied = dict(entry)
        copied["content"] = content
        return copied  # type: ignore[return-value]
    return dataclasses.replace(entry, content=content)


def _unsupported(entry: Any) -> bool:
    if _is_record(entry):
        return False
    logger.warning("Unsupported record type, content left as is",
                   extra_data={"record_type": type(entry).__name__})
    return True


def _key_outcome(user_id: str, key_cache: Optional[KeyCache]) -> Outcome:
    if key_cache is not None:
        return key_cache.try_get(user_id)
    return try_derive_key(user_id)


def _failure_context(err: Err) -> dict:
    return {"error_type": type(err.error).__name__, "error": str(err.error)}


# ---------------------------------------------------------------------
# Text fields
# ---------------------------------------------------------------------

def encrypt_text_field(
    content: str,
    user_id: str,
    *,
    key_cache: Optional[KeyCache] = None,
    tag: bool = True,
) -> str:
    """Return the stored form of *content*, or *content* itself on failure."""
    if not content or not user_id:
        return content

    key = _key_outcome(user_id, key_cache)
    if isinstance(key, Err):
        logger.encryption_event("key derivation failed, storing plaintext", success=False,
                                extra_data=_failure_context(key))
        return content

    sealed = try_encrypt(content, key.value)
    if isinstance(sealed, Err):
        logger.encryption_event("encrypt failed, storing plaintext", success=False,
                                extra_data=_failure_context(sealed))
        return content

    logger.encryption_event("content encrypted")
    return FORMAT_TAG + sealed.value if tag else sealed.value


def decrypt_text_field(
    stored: str,
    user_id: str,
    *,
    key_cache: Optional[KeyCache] = None,
) -> str:
    """Return the plaintext for *stored*, or *stored* itself on failure."""
    if not stored or not user_id:
        return stored

    if is_tagged(stored):
        payload = stored[len(FORMAT_TAG):]
    elif looks_encrypted(stored):
        payload = stored
    else:
        return stored

    key = _key_outcome(user_id, key_cache)
    if isinstance(key, Err):
        logger.encryption_event("key derivation failed, returning stored content", success=False,
                                extra_data=_failure_context(key))
        return stored

    opened = try_decrypt(payload, key.value)
    if isinstance(opened, Err):
        logger.encryption_event("decrypt failed, returning stored content", success=False,
                                extra_data=_failure_context(opened))
        return stored

    logger.encryption_event("content decrypted")
    return opened.value


# ---------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------

def encrypt_entry(
    entry: R,
    user_id: str,
    *,
    key_cache: Optional[KeyCache] = None,
    tag: bool = True,
) -> R:
    """Return a copy of *entry* whose ``content`` is ciphertext.

    Absent entry, empty user id, or empty content return *entry* as is.
    On failure the original plaintext entry is returned.
    """
    if entry is None or not user_id:
        return entry
    if _unsupported(entry):
        return entry
    content = _get_content(entry)
    if not content:
        return entry
    stored = encrypt_text_field(content, user_id, key_cache=key_cache, tag=tag)
    if stored == content:
        return entry
    return _with_content(entry, stored)


def decrypt_entry(
    entry: R,
    user_id: str,
    *,
    key_cache: Optional[KeyCache] = None,
) -> R:
    """Return a copy of *entry* whose ``content`` is plaintext.

    Legacy plaintext passes through; undecryptable content is returned
    exactly as stored.
    """
    if entry is None or not user_id:
        return entry
    if _unsupported(entry):
        return entry
    content = _get_content(entry)
    if not content:
        return entry
    plain = decrypt_text_field(content, user_id, key_cache=key_cache)
    if plain == content:
        return entry
    return _with_content(entry, plain)
