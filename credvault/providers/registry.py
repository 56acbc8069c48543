"""Static map of provider id -> provider definition."""

from credvault.exceptions import ProviderUnknownError
from credvault.providers.anthropic import AnthropicProvider
from credvault.providers.base import CredentialProvider
from credvault.providers.bitbucket import BitbucketProvider
from credvault.providers.github import GitHubProvider
from credvault.providers.gitlab import GitLabProvider
from credvault.providers.openai import OpenAIProvider


class ProviderRegistry:
    """Lookup table for credential providers.

    Populated once at startup; nothing mutates it afterwards.
    """

    def __init__(self):
        self._providers: dict[str, CredentialProvider] = {}

    def register(self, provider: CredentialProvider) -> None:
        """Register a provider under its ``provider_id``.

        Raises:
            ValueError: if the id is empty or already registered
        """
        if not provider.provider_id:
            raise ValueError(f"{type(provider).__name__} has no provider_id")
        if provider.provider_id in self._providers:
            raise ValueError(f"Provider '{provider.provider_id}' is already registered")
        self._providers[provider.provider_id] = provider

    def get(self, provider_id: str) -> CredentialProvider:
        """Get a provider by id.

        Raises:
            ProviderUnknownError: carrying the list of known ids
        """
        provider = self._providers.get(provider_id)
        if provider is None:
            known = self.get_provider_ids()
            raise ProviderUnknownError(
                f"Unknown provider '{provider_id}'. Supported providers: {', '.join(known)}",
                provider_id=provider_id,
                known_providers=known,
            )
        return provider

    def has(self, provider_id: str) -> bool:
        return provider_id in self._providers

    def get_all(self) -> list[CredentialProvider]:
        return list(self._providers.values())

    def get_provider_ids(self) -> list[str]:
        return list(self._providers.keys())

    def __len__(self) -> int:
        return len(self._providers)


def default_registry() -> ProviderRegistry:
    """Registry with every built-in provider."""
    registry = ProviderRegistry()
    for provider in (
        GitHubProvider(),
        GitLabProvider(),
        OpenAIProvider(),
        AnthropicProvider(),
        BitbucketProvider(),
    ):
        registry.register(provider)
    return registry
