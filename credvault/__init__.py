"""credvault: encrypted multi-provider credential vault.

Usage:
    from credvault import create_vault

    vault = create_vault()
    result = await vault.set_credential("github", token, user_id="alice")
    print(result.masked_value)
"""

from credvault.types import (
    CredentialType, LivenessStatus, OperationClass, CredentialKey, Credential,
    CredentialSummary, SetCredentialResult, GetCredentialResult,
    DeleteCredentialResult, ListCredentialsResult, StatusResult,
    ValidateCredentialResult, RecommendationContext, RecommendationReport, NextActions,
)
from credvault.exceptions import (
    VaultError, ValidationError, RateLimitError, ProviderUnknownError,
    StorageError, DecryptionError, NotFoundError, ConfigurationError,
)
from credvault.core.vault import VaultController
from credvault.core.projects import ProjectCredentialManager, project_scope
from credvault.factory import create_vault
from credvault.version import __version__

__all__ = [
    "CredentialType", "LivenessStatus", "OperationClass", "CredentialKey", "Credential",
    "CredentialSummary", "SetCredentialResult", "GetCredentialResult",
    "DeleteCredentialResult", "ListCredentialsResult", "StatusResult",
    "ValidateCredentialResult", "RecommendationContext", "RecommendationReport", "NextActions",
    "VaultError", "ValidationError", "RateLimitError", "ProviderUnknownError",
    "StorageError", "DecryptionError", "NotFoundError", "ConfigurationError",
    "VaultController", "ProjectCredentialManager", "project_scope", "create_vault",
    "__version__",
]
