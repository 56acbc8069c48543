"""OpenAI API keys."""

from typing import Any

from credvault.providers.base import CredentialProvider
from credvault.types import CredentialType, FormatCheck


class OpenAIProvider(CredentialProvider):
    provider_id = "openai"
    display_name = "OpenAI"
    supported_types = (CredentialType.API_KEY,)
    token_prefixes = ("sk-",)
    docs_url = "https://platform.openai.com/api-keys"
    value_label = "API key"

    def validate_credential(self, value: Any) -> FormatCheck:
        failure = self._check_non_empty(value)
        if failure:
            return failure
        # prefix is checked before length for API keys
        if not self._has_prefix(value):
            return FormatCheck(valid=False, reason="API key must start with sk-")
        return self._check_length(value) or FormatCheck(valid=True)

    def get_auth_headers(self, value: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {value}", "Content-Type": "application/json"}
