"""GitLab personal access, feed and deploy tokens."""

from typing import Any

import httpx

from credvault.providers.base import CredentialProvider
from credvault.types import CredentialType, FormatCheck, LivenessResult, LivenessStatus


class GitLabProvider(CredentialProvider):
    provider_id = "gitlab"
    display_name = "GitLab"
    supported_types = (CredentialType.OAUTH_TOKEN, CredentialType.BEARER_TOKEN)
    required_scopes = ("api", "read_repository", "write_repository")
    recommended_scopes = required_scopes
    token_prefixes = ("glpat-", "glft-", "glt_")
    docs_url = "https://gitlab.com/-/user_settings/personal_access_tokens"
    user_url = "https://gitlab.com/api/v4/user"

    def validate_credential(self, value: Any) -> FormatCheck:
        failure = self._check_non_empty(value) or self._check_length(value)
        if failure:
            return failure
        if not self._has_prefix(value):
            return FormatCheck(valid=False, reason="Token must start with valid GitLab prefix")
        return FormatCheck(valid=True)

    def _parse_user(self, response: httpx.Response) -> LivenessResult:
        return LivenessResult(status=LivenessStatus.VALID, provider_user=self._user_field(response, "username"))
