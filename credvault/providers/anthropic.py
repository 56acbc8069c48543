"""Anthropic API keys."""

from typing import Any

from credvault.providers.base import CredentialProvider
from credvault.types import CredentialType, FormatCheck

ANTHROPIC_API_VERSION = "2023-06-01"


class AnthropicProvider(CredentialProvider):
    provider_id = "anthropic"
    display_name = "Anthropic"
    supported_types = (CredentialType.API_KEY,)
    token_prefixes = ("sk-ant-",)
    docs_url = "https://console.anthropic.com/settings/keys"
    value_label = "API key"

    def validate_credential(self, value: Any) -> FormatCheck:
        failure = self._check_non_empty(value)
        if failure:
            return failure
        if not self._has_prefix(value):
            return FormatCheck(valid=False, reason="API key must start with sk-ant-")
        return self._check_length(value) or FormatCheck(valid=True)

    def get_auth_headers(self, value: str) -> dict[str, str]:
        return {
            "x-api-key": value,
            "Content-Type": "application/json",
            "anthropic-version": ANTHROPIC_API_VERSION,
        }
