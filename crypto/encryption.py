"""
Token encryption — encrypt / decrypt X OAuth tokens at rest.

Uses AES-256-GCM from the ``cryptography`` library with a fresh 12-byte
nonce per call.  The key is loaded from ``config.encryption_key``
(env var: ``ENCRYPTION_KEY``) and must be base64 that decodes to exactly
32 bytes.  Generate one with::

    python -c "import base64, os; print(base64.b64encode(os.urandom(32)).decode())"

Envelope format (the only form written to the database)::

    <iv hex>:<auth tag hex>:<ciphertext hex>
"""

from __future__ import annotations

import binascii
import logging
import os
from base64 import b64decode
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from config.settings import config

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
IV_LENGTH = 12
TAG_LENGTH = 16
_SEPARATOR = ":"


class TokenCipherError(Exception):
    """Base class for token encryption failures."""


class InvalidKeyConfiguration(TokenCipherError):
    """The configured key is missing, not base64, or not 32 bytes."""


class MalformedEnvelope(TokenCipherError):
    """The ciphertext is not a well-formed ``iv:tag:ciphertext`` envelope."""


class AuthenticationFailed(TokenCipherError):
    """The GCM tag did not verify (wrong key, corruption, or tampering)."""


class TokenCipher:
    """AES-256-GCM cipher over a base64-encoded key."""

    def __init__(self, key_b64: str) -> None:
        self._key_b64 = key_b64

    def _load_key(self) -> bytes:
        if not self._key_b64:
            raise InvalidKeyConfiguration("ENCRYPTION_KEY is not set")
        try:
            key = b64decode(self._key_b64, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidKeyConfiguration("ENCRYPTION_KEY is not valid base64") from exc
        if len(key) != KEY_LENGTH:
            raise InvalidKeyConfiguration(
                f"ENCRYPTION_KEY must decode to {KEY_LENGTH} bytes (got {len(key)})"
            )
        return key

    def validate(self) -> None:
        """Raise ``InvalidKeyConfiguration`` if the key is unusable."""
        self._load_key()

    def encrypt(self, plaintext: str) -> str:
        """Encrypt *plaintext* into an ``iv:tag:ciphertext`` envelope."""
        aesgcm = AESGCM(self._load_key())
        iv = os.urandom(IV_LENGTH)
        sealed = aesgcm.encrypt(iv, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return _SEPARATOR.join((iv.hex(), tag.hex(), ciphertext.hex()))

    def decrypt(self, envelope: str) -> str:
        """
        Decrypt an envelope produced by :meth:`encrypt`.

        Raises ``MalformedEnvelope`` if the envelope can't be parsed and
        ``AuthenticationFailed`` if the tag doesn't verify.
        """
        key = self._load_key()
        iv, tag, ciphertext = _split_envelope(envelope)
        try:
            plaintext = AESGCM(key).decrypt(iv, ciphertext + tag, None)
        except InvalidTag as exc:
            raise AuthenticationFailed("Encrypted token failed authentication") from exc
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedEnvelope("Decrypted token is not valid UTF-8") from exc


def _split_envelope(envelope: str) -> tuple[bytes, bytes, bytes]:
    parts = envelope.split(_SEPARATOR) if isinstance(envelope, str) else []
    if len(parts) != 3:
        raise MalformedEnvelope("Invalid encrypted token format")
    try:
        iv, tag, ciphertext = (bytes.fromhex(part) for part in parts)
    except ValueError as exc:
        raise MalformedEnvelope("Invalid encrypted token format") from exc
    if len(iv) != IV_LENGTH or len(tag) != TAG_LENGTH:
        raise MalformedEnvelope("Invalid encrypted token format")
    return iv, tag, ciphertext


# ── Process-wide cipher bound to config ─────────────────────────────────

_cipher: Optional[TokenCipher] = None


def get_cipher() -> TokenCipher:
    """Return the cipher for ``config.encryption_key`` (created once)."""
    global _cipher
    if _cipher is None:
        _cipher = TokenCipher(config.encryption_key)
    return _cipher


def encrypt_token(plaintext: str) -> str:
    """Encrypt a token string for database storage."""
    return get_cipher().encrypt(plaintext)


def decrypt_token(envelope: str) -> str:
    """Decrypt a token envelope read from the database."""
    return get_cipher().decrypt(envelope)


def check_encryption_key() -> bool:
    """Validate the configured key at startup; logs and returns False if unusable."""
    try:
        get_cipher().validate()
    except InvalidKeyConfiguration as exc:
        logger.error("Token encryption unavailable: %s", exc)
        return False
    logger.info("Token encryption enabled (AES-256-GCM)")
    return True
