"""Project- and environment-scoped credentials on top of the vault.

Scopes look like ``project:<name>`` for the default environment and
``project:<name>:<environment>`` otherwise. Everything goes through the
:class:`VaultController`, so rate limits, validation and masking apply.
"""

import logging
import re
from typing import Optional

from credvault.core.vault import VaultController
from credvault.exceptions import ValidationError, VaultError
from credvault.types import (
    CloneEntryResult, CloneProjectResult, DeleteProjectResult, GetCredentialResult,
    ProjectCredentialEntry, ProjectCredentials, ProjectSummary, SetCredentialResult,
)

logger = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT = "default"
SCOPE_PREFIX = "project:"
_NAME_PATTERN = re.compile(r"[^:\s]{1,100}")
_SCOPE_PATTERN = re.compile(r"project:([^:]+)(?::([^:]+))?")


def project_scope(project: str, environment: str = DEFAULT_ENVIRONMENT) -> str:
    """Build the scope string for *project* / *environment*.

    Raises:
        ValidationError: empty names, or names containing ':' or whitespace
    """
    if not project or not _NAME_PATTERN.fullmatch(project):
        raise ValidationError("Project name is required and may not contain ':' or whitespace")
    environment = environment or DEFAULT_ENVIRONMENT
    if not _NAME_PATTERN.fullmatch(environment):
        raise ValidationError("Environment name may not contain ':' or whitespace")
    if environment == DEFAULT_ENVIRONMENT:
        return f"{SCOPE_PREFIX}{project}"
    return f"{SCOPE_PREFIX}{project}:{environment}"


def parse_project_scope(scope: Optional[str]) -> Optional[tuple[str, str]]:
    """``(project, environment)`` for a project scope, else None."""
    if not scope:
        return None
    match = _SCOPE_PATTERN.fullmatch(scope)
    if not match:
        return None
    return match.group(1), match.group(2) or DEFAULT_ENVIRONMENT


class ProjectCredentialManager:
    """Groups a user's credentials by project and environment."""

    def __init__(self, vault: VaultController):
        self.vault = vault

    async def set_project_credential(
        self,
        user_id: str,
        project: str,
        provider_id: str,
        value: str,
        environment: str = DEFAULT_ENVIRONMENT,
        skip_live_validation: bool = False,
    ) -> SetCredentialResult:
        scope = project_scope(project, environment)
        return await self.vault.set_credential(
            provider_id, value, user_id, scope=scope,
            skip_live_validation=skip_live_validation,
            metadata={"project": project, "environment": environment, "type": "project_credential"},
        )

    async def get_project_credential(
        self,
        user_id: str,
        project: str,
        provider_id: str,
        environment: str = DEFAULT_ENVIRONMENT,
    ) -> GetCredentialResult:
        return await self.vault.get_credential(provider_id, user_id, scope=project_scope(project, environment))

    async def get_project_credentials(self, user_id: str, project: str) -> ProjectCredentials:
        """All of *project*'s credentials, grouped provider -> environment."""
        project_scope(project)
        listing = await self.vault.list_credentials(user_id)
        result = ProjectCredentials(project=project, user_id=user_id)
        for cred in listing.credentials:
            parsed = parse_project_scope(cred.scope)
            if parsed is None or parsed[0] != project:
                continue
            environment = parsed[1]
            by_env = result.credentials.setdefault(cred.provider_id, {})
            if environment in by_env and cred.scope != project_scope(project, environment):
                # project:<p>:default and project:<p> share a slot, the canonical scope is kept
                continue
            if environment not in by_env:
                result.total_credentials += 1
            by_env[environment] = ProjectCredentialEntry(
                provider_id=cred.provider_id,
                environment=environment,
                scope=cred.scope,
                created_at=cred.created_at,
                updated_at=cred.updated_at,
            )
        return result

    async def list_projects(self, user_id: str) -> list[ProjectSummary]:
        listing = await self.vault.list_credentials(user_id)
        projects: dict[str, ProjectSummary] = {}
        slots: set[tuple[str, str, str]] = set()
        for cred in listing.credentials:
            parsed = parse_project_scope(cred.scope)
            if parsed is None:
                continue
            name, environment = parsed
            summary = projects.setdefault(name, ProjectSummary(name=name))
            if environment not in summary.environments:
                summary.environments.append(environment)
            if cred.provider_id not in summary.providers:
                summary.providers.append(cred.provider_id)
            if (name, environment, cred.provider_id) not in slots:
                slots.add((name, environment, cred.provider_id))
                summary.credential_count += 1
        for summary in projects.values():
            summary.environments.sort()
            summary.providers.sort()
        return sorted(projects.values(), key=lambda p: p.name)

    async def clone_project(
        self,
        user_id: str,
        source_project: str,
        target_project: str,
        providers: Optional[list[str]] = None,
    ) -> CloneProjectResult:
        """Copy every (or the selected providers') credential into *target_project*.

        Per-entry failures are collected rather than raised.
        """
        project_scope(target_project)
        source = await self.get_project_credentials(user_id, source_project)
        result = CloneProjectResult(source_project=source_project, target_project=target_project)

        for provider_id in providers or list(source.credentials):
            for environment, entry in source.credentials.get(provider_id, {}).items():
                target_scope = project_scope(target_project, environment)
                outcome = CloneEntryResult(
                    provider_id=provider_id,
                    environment=environment,
                    source_scope=entry.scope,
                    target_scope=target_scope,
                    success=True,
                )
                try:
                    await self.vault.clone_credential(
                        provider_id, user_id, entry.scope, target_scope,
                        metadata={
                            "project": target_project,
                            "environment": environment,
                            "type": "project_credential",
                            "cloned_from_project": source_project,
                        },
                    )
                except VaultError as exc:
                    logger.warning("[Projects] Clone of %s %s failed: %s", provider_id, entry.scope, exc)
                    result.failed.append(outcome.model_copy(update={"success": False, "error": str(exc)}))
                    continue
                result.cloned.append(outcome)
        return result

    async def delete_project(self, user_id: str, project: str, confirm: bool = False) -> DeleteProjectResult:
        """Delete every credential of *project*. Requires ``confirm=True``."""
        if not confirm:
            return DeleteProjectResult(
                success=False,
                project=project,
                needs_confirmation=True,
                message=f"This will delete all credentials for project '{project}'. Repeat with confirm=True.",
            )

        project_scope(project)
        listing = await self.vault.list_credentials(user_id)
        deleted = 0
        for cred in listing.credentials:
            parsed = parse_project_scope(cred.scope)
            if parsed is None or parsed[0] != project:
                continue
            outcome = await self.vault.delete_credential(cred.provider_id, user_id, scope=cred.scope, confirm=True)
            if outcome.removed:
                deleted += 1
        logger.info("[Projects] Deleted %d credentials of project %s for %s", deleted, project, user_id)
        return DeleteProjectResult(success=True, project=project, deleted_count=deleted,
                                   message=f"Deleted {deleted} credentials")
