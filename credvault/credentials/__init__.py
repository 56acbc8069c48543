"""Encrypted credential storage: AEAD encryption, masking, liveness cache."""

from credvault.credentials.encryption import CredentialEncryption
from credvault.credentials.masking import mask_secret
from credvault.credentials.store import EncryptedStore
from credvault.credentials.validation_cache import ValidationCache

__all__ = ["CredentialEncryption", "EncryptedStore", "ValidationCache", "mask_secret"]
