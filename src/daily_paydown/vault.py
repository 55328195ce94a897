"""AES-256-GCM encryption of provider access tokens at rest.

Records are three colon-joined hex segments: ``nonce:tag:ciphertext``.
"""
import os
import re

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

KEY_BYTES = 32
NONCE_BYTES = 12
TAG_BYTES = 16

_HEX_KEY = re.compile(r"^[0-9a-fA-F]{64}$")


class VaultConfigurationError(ValueError):
    """The encryption key is missing or malformed."""


class DecryptionError(Exception):
    """A stored credential record is tampered with or malformed."""


class CredentialVault:
    """Encrypts and decrypts access tokens with a fixed 32-byte key.

    Every encrypt() call draws a fresh random nonce, so identical plaintexts
    never produce identical records.
    """

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_BYTES:
            raise VaultConfigurationError(
                f"Encryption key must be {KEY_BYTES} bytes, got {len(key)}"
            )
        self._aead = AESGCM(key)

    @classmethod
    def from_hex(cls, hex_key: str | None) -> "CredentialVault":
        """Build a vault from a 64-character hex key (PLAID_TOKEN_ENCRYPTION_KEY)."""
        if not hex_key:
            raise VaultConfigurationError("PLAID_TOKEN_ENCRYPTION_KEY is required")
        if len(hex_key) != KEY_BYTES * 2:
            raise VaultConfigurationError(
                "PLAID_TOKEN_ENCRYPTION_KEY must be a 32-byte hex string (64 characters), "
                f"got {len(hex_key)} characters"
            )
        if not _HEX_KEY.match(hex_key):
            raise VaultConfigurationError("PLAID_TOKEN_ENCRYPTION_KEY must be a valid hex string")
        return cls(bytes.fromhex(hex_key))

    def encrypt(self, plaintext: str) -> str:
        """Encrypt plaintext into a ``nonce:tag:ciphertext`` hex record."""
        nonce = os.urandom(NONCE_BYTES)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        # AESGCM appends the tag to the ciphertext
        ciphertext, tag = sealed[:-TAG_BYTES], sealed[-TAG_BYTES:]
        return f"{nonce.hex()}:{tag.hex()}:{ciphertext.hex()}"

    def decrypt(self, record: str) -> str:
        """Decrypt a record produced by encrypt().

        Raises:
            DecryptionError: Wrong segment count, invalid hex, bad tag or nonce,
                or authentication failure.
        """
        parts = record.split(":")
        if len(parts) != 3:
            raise DecryptionError(
                f"Invalid encrypted data format: expected 3 segments, got {len(parts)}"
            )
        try:
            nonce, tag, ciphertext = (bytes.fromhex(p) for p in parts)
        except ValueError as exc:
            raise DecryptionError("Encrypted data is not valid hex") from exc
        if len(tag) != TAG_BYTES:
            raise DecryptionError(f"Authentication tag must be {TAG_BYTES} bytes")
        try:
            plaintext = self._aead.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as exc:
            raise DecryptionError("Authentication tag mismatch") from exc
        except ValueError as exc:
            # Nonce of unsupported length
            raise DecryptionError(str(exc)) from exc
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionError("Decrypted data is not UTF-8") from exc
