"""AES-256-GCM encryption for credentials at rest, keyed by PBKDF2."""

import binascii
import hashlib
import logging
import os
import secrets
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from credvault.exceptions import ConfigurationError, DecryptionError
from credvault.types import EncryptedPayload

logger = logging.getLogger(__name__)

MIN_MASTER_KEY_LENGTH = 32
MIN_KDF_ITERATIONS = 100_000
KEY_LENGTH = 32          # AES-256
IV_LENGTH = 12           # GCM standard nonce
TAG_LENGTH = 16
_SALT_SUFFIX = "credvault-credential-salt"


class CredentialEncryption:
    """AEAD wrapper: AES-256-GCM with a key derived from a master secret.

    Each ``encrypt`` call draws a fresh 12-byte IV. The GCM output is split
    into ciphertext and the 16-byte tag so all three parts can be stored as
    separate hex columns. Callers pass the credential identity as associated
    data, so a row copied under another identity fails authentication.

    If no master key is supplied outside production an ephemeral random key
    is generated and a WARNING logged. Anything encrypted with it is
    unrecoverable after restart. Set ``CREDVAULT_MASTER_KEY`` to persist.
    """

    def __init__(
        self,
        master_key: Optional[str] = None,
        salt: Optional[str] = None,
        iterations: int = MIN_KDF_ITERATIONS,
        production: bool = False,
    ) -> None:
        if iterations < MIN_KDF_ITERATIONS:
            raise ConfigurationError(
                f"PBKDF2 iterations must be at least {MIN_KDF_ITERATIONS}, got {iterations}"
            )

        if not master_key:
            if production:
                raise ConfigurationError("CREDVAULT_MASTER_KEY is required in production")
            master_key = secrets.token_urlsafe(48)
            self.ephemeral = True
            logger.warning(
                "CredentialEncryption: no master key provided, generated an ephemeral key. "
                "Credentials will be unrecoverable after process restart. "
                "Set CREDVAULT_MASTER_KEY to a persistent secret of at least %d characters.",
                MIN_MASTER_KEY_LENGTH,
            )
        else:
            self.ephemeral = False

        if len(master_key) < MIN_MASTER_KEY_LENGTH:
            raise ConfigurationError(
                f"Master key must be at least {MIN_MASTER_KEY_LENGTH} characters"
            )

        salt_bytes = salt.encode() if salt else hashlib.sha256((master_key + _SALT_SUFFIX).encode()).digest()
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=salt_bytes,
            iterations=iterations,
        )
        self._aesgcm = AESGCM(kdf.derive(master_key.encode()))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def encrypt(self, plaintext: str, associated_data: Optional[bytes] = None) -> EncryptedPayload:
        """Encrypt *plaintext* under a fresh IV."""
        iv = os.urandom(IV_LENGTH)
        sealed = self._aesgcm.encrypt(iv, plaintext.encode(), associated_data)
        return EncryptedPayload(
            ciphertext=sealed[:-TAG_LENGTH].hex(),
            iv=iv.hex(),
            auth_tag=sealed[-TAG_LENGTH:].hex(),
        )

    def decrypt(self, payload: EncryptedPayload, associated_data: Optional[bytes] = None) -> str:
        """Authenticate and decrypt *payload*.

        Raises:
            DecryptionError: tag mismatch, wrong key, wrong associated data or
                malformed hex. Never includes payload bytes in the message.
        """
        try:
            iv = bytes.fromhex(payload.iv)
            tag = bytes.fromhex(payload.auth_tag)
            ciphertext = bytes.fromhex(payload.ciphertext)
        except (ValueError, binascii.Error) as exc:
            raise DecryptionError("Decryption failed: stored payload is malformed") from exc

        if len(iv) != IV_LENGTH or len(tag) != TAG_LENGTH:
            raise DecryptionError("Decryption failed: stored payload is malformed")

        try:
            return self._aesgcm.decrypt(iv, ciphertext + tag, associated_data).decode()
        except InvalidTag as exc:
            raise DecryptionError("Decryption failed: authentication tag mismatch") from exc
