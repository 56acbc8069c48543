"""Typed exception hierarchy. Every error the vault can raise.

No exception message or ``details`` payload may contain a plaintext secret
or ciphertext; callers are free to log them verbatim.
"""


class VaultError(Exception):
    """Base exception for all vault errors."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(VaultError):
    """Caller-correctable input problem (bad format, rejected by provider, bad user id)."""
    def __init__(self, message: str, reason: str = "", hint: str = "", provider_id: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.reason = reason or message
        self.hint = hint
        self.provider_id = provider_id


class RateLimitError(VaultError):
    """Too many attempts for this (user, operation) window."""
    def __init__(self, message: str, retry_after_seconds: int = 0, operation: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after_seconds = retry_after_seconds
        self.operation = operation


class ProviderUnknownError(VaultError):
    """Requested provider id is not registered."""
    def __init__(self, message: str, provider_id: str = "", known_providers: list = None, **kwargs):
        super().__init__(message, **kwargs)
        self.provider_id = provider_id
        self.known_providers = known_providers or []


class StorageError(VaultError):
    """Persistence backend unavailable, or a read/write against it failed."""
    pass


class DecryptionError(VaultError):
    """Stored payload failed authentication. Treated as data corruption."""
    def __init__(self, message: str, storage_key: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.storage_key = storage_key


class NotFoundError(VaultError):
    """No credential exists at the requested identity."""
    def __init__(self, message: str, storage_key: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.storage_key = storage_key


class ConfigurationError(VaultError):
    """Vault was constructed with unusable settings (short master key, weak KDF)."""
    pass
