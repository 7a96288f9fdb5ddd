"""
TokenCipher - at-rest encryption for stored Meta access tokens.

Tokens are stored as ``enc.v1:<iv>:<tag>:<ciphertext>`` (base64 parts) using
AES-256-GCM. Tokens saved before encryption was enabled are plain strings and
pass through decrypt() unchanged.
"""

import base64
import binascii
import logging
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .config import Config

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "enc.v1"
KEY_SIZE = 32
IV_SIZE = 12
TAG_SIZE = 16


def parse_key(raw_key: Optional[str]) -> Optional[bytes]:
    """
    Turn a configured key string into 32 raw key bytes.

    Accepts a base64 string decoding to 32 bytes, or a 32 character string
    used as-is. Anything else yields None.

    Args:
        raw_key: Key as configured (META_TOKEN_ENC_KEY)

    Returns:
        32-byte key or None
    """
    if not raw_key:
        return None
    raw_key = raw_key.strip()
    if not raw_key:
        return None

    try:
        decoded = base64.b64decode(raw_key, validate=True)
        if len(decoded) == KEY_SIZE:
            return decoded
    except (binascii.Error, ValueError):
        pass

    encoded = raw_key.encode("utf-8")
    if len(raw_key) == KEY_SIZE and len(encoded) == KEY_SIZE:
        return encoded

    logger.warning("META_TOKEN_ENC_KEY must decode to exactly 32 bytes (AES-256)")
    return None


class TokenCipher:
    """
    Encrypts and decrypts Meta access tokens with a process-wide key.

    Create one instance at startup and share it; the key is parsed once.
    """

    def __init__(self, key: Optional[bytes] = None):
        if key is not None and len(key) != KEY_SIZE:
            raise ValueError(f"Token key must be {KEY_SIZE} bytes, got {len(key)}")
        self._key = key
        self._aesgcm = AESGCM(key) if key else None

    @classmethod
    def from_config(cls) -> "TokenCipher":
        """Build a cipher from META_TOKEN_ENC_KEY."""
        return cls(parse_key(Config.META_TOKEN_ENC_KEY))

    @property
    def has_key(self) -> bool:
        return self._aesgcm is not None

    def encrypt(self, token: str) -> str:
        """
        Encrypt a token for storage.

        Returns the token unchanged when it is empty or no key is configured.
        """
        if not token or self._aesgcm is None:
            return token

        iv = os.urandom(IV_SIZE)
        sealed = self._aesgcm.encrypt(iv, token.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]

        return ":".join([
            TOKEN_PREFIX,
            base64.b64encode(iv).decode("ascii"),
            base64.b64encode(tag).decode("ascii"),
            base64.b64encode(ciphertext).decode("ascii"),
        ])

    def decrypt(self, token: Optional[str]) -> Optional[str]:
        """
        Decrypt a stored token.

        Args:
            token: Stored value, encrypted or legacy plaintext

        Returns:
            Plaintext token, the input itself when it is not encrypted, or
            None when it is empty or cannot be decrypted
        """
        if not token:
            return None
        if not token.startswith(f"{TOKEN_PREFIX}:"):
            return token

        if self._aesgcm is None:
            logger.error("Encrypted Meta token stored but META_TOKEN_ENC_KEY is missing or invalid")
            return None

        parts = token.split(":")
        if len(parts) != 4 or not all(parts[1:]):
            logger.error("Invalid encrypted Meta token format")
            return None

        try:
            iv = base64.b64decode(parts[1], validate=True)
            tag = base64.b64decode(parts[2], validate=True)
            ciphertext = base64.b64decode(parts[3], validate=True)
            plaintext = self._aesgcm.decrypt(iv, ciphertext + tag, None)
            return plaintext.decode("utf-8")
        except (binascii.Error, ValueError, InvalidTag) as e:
            logger.error(f"Failed to decrypt Meta token: {type(e).__name__}")
            return None
