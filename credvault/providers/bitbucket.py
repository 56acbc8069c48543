"""Bitbucket app passwords and access tokens. No fixed prefix."""

from typing import Any

from credvault.providers.base import CredentialProvider
from credvault.types import CredentialType, FormatCheck


class BitbucketProvider(CredentialProvider):
    provider_id = "bitbucket"
    display_name = "Bitbucket"
    supported_types = (CredentialType.OAUTH_TOKEN, CredentialType.BEARER_TOKEN)
    required_scopes = ("repository:write", "pullrequest:write")
    recommended_scopes = required_scopes
    docs_url = "https://bitbucket.org/account/settings/app-passwords/"

    def validate_credential(self, value: Any) -> FormatCheck:
        failure = self._check_non_empty(value) or self._check_length(value)
        return failure or FormatCheck(valid=True)

    def get_auth_headers(self, value: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {value}", "Accept": "application/json"}
