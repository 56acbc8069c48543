"""Provider definitions and the registry that maps provider ids to them."""

from credvault.providers.base import CredentialProvider
from credvault.providers.registry import ProviderRegistry, default_registry

__all__ = ["CredentialProvider", "ProviderRegistry", "default_registry"]
