"""GitHub personal access / OAuth / app tokens."""

from typing import Any

import httpx

from credvault.providers.base import CredentialProvider
from credvault.types import CredentialType, FormatCheck, LivenessResult, LivenessStatus


class GitHubProvider(CredentialProvider):
    provider_id = "github"
    display_name = "GitHub"
    supported_types = (CredentialType.OAUTH_TOKEN, CredentialType.BEARER_TOKEN)
    required_scopes = ("repo", "read:org")
    recommended_scopes = ("repo", "workflow", "gist")
    token_prefixes = (
        "ghp_",  # personal access token (classic)
        "gho_",  # OAuth token
        "ghu_",  # user-to-server token
        "ghs_",  # server-to-server token
        "ghr_",  # refresh token
        "ghb_",  # build token
        "ghc_",  # customer token
    )
    min_length = 36
    docs_url = "https://github.com/settings/tokens"
    auth_url = "https://github.com/login/oauth/authorize"
    token_url = "https://github.com/login/oauth/access_token"
    user_url = "https://api.github.com/user"

    def validate_credential(self, value: Any) -> FormatCheck:
        failure = self._check_non_empty(value) or self._check_length(value)
        if failure:
            return failure
        if not self._has_prefix(value):
            return FormatCheck(valid=False, reason="Token must start with valid GitHub prefix")
        if not self._is_alphanumeric(value.split("_")[1]):
            return FormatCheck(valid=False, reason="Token contains invalid characters")
        return FormatCheck(valid=True)

    def get_auth_headers(self, value: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {value}",
            "Accept": "application/vnd.github.v3+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _parse_user(self, response: httpx.Response) -> LivenessResult:
        login = self._user_field(response, "login")
        header = response.headers.get("X-OAuth-Scopes", "")
        scopes = [s.strip() for s in header.split(",") if s.strip()]
        return LivenessResult(status=LivenessStatus.VALID, provider_user=login, scopes=scopes)
