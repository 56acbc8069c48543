"""Best-effort credential usage tracking and rotation hygiene.

Nothing here may fail a vault operation: ``record_usage`` swallows and logs
its own errors, and the controller treats analytics as optional.
"""

import logging
from collections import deque
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from credvault.types import (
    CredentialHealth, CredentialHealthReport, CredentialSummary, HealthRecommendation,
    MostUsedEntry, NextActions, RecommendationContext, RecommendationReport,
    UsageEvent, UsageStats, utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_ROTATION_DAYS = 90
DEFAULT_RECOMMENDED_PROVIDERS = ("github", "openai")
AI_PROVIDERS = ("openai", "anthropic")
CROWDED_PROVIDER_THRESHOLD = 2


class CredentialAnalytics:
    """In-process usage log with a bounded history.

    Args:
        max_events: oldest events are dropped beyond this many
        clock: returns the current aware UTC datetime, injectable for tests
    """

    def __init__(self, max_events: int = 10_000, clock: Callable[[], datetime] = utcnow):
        self._events: deque[UsageEvent] = deque(maxlen=max_events)
        self._clock = clock

    def record_usage(
        self,
        user_id: str,
        provider_id: str,
        operation: str,
        scope: Optional[str] = None,
        success: bool = True,
    ) -> None:
        try:
            self._events.append(UsageEvent(
                user_id=user_id,
                provider_id=provider_id,
                scope=scope,
                operation=operation,
                success=success,
                at=self._clock(),
            ))
        except Exception as exc:
            logger.debug("[Analytics] Could not record usage: %s", exc)

    def _recent(self, user_id: str, days: int) -> list[UsageEvent]:
        since = self._clock() - timedelta(days=days)
        return [e for e in self._events if e.user_id == user_id and e.at > since]

    def get_usage_stats(self, user_id: str, days: int = 30) -> UsageStats:
        stats = UsageStats(user_id=user_id, period_days=days)
        for event in self._recent(user_id, days):
            stats.total_operations += 1
            if event.success:
                stats.successful_operations += 1
            else:
                stats.failed_operations += 1
            stats.by_provider[event.provider_id] = stats.by_provider.get(event.provider_id, 0) + 1
            stats.by_operation[event.operation] = stats.by_operation.get(event.operation, 0) + 1
            last = stats.last_used.get(event.provider_id)
            if last is None or event.at > last:
                stats.last_used[event.provider_id] = event.at
        return stats

    def get_most_used(self, user_id: str, limit: int = 5, days: int = 30) -> list[MostUsedEntry]:
        """Successful uses grouped by (provider, scope), busiest first."""
        grouped: dict[tuple[str, Optional[str]], MostUsedEntry] = {}
        for event in self._recent(user_id, days):
            if not event.success:
                continue
            key = (event.provider_id, event.scope)
            entry = grouped.get(key)
            if entry is None:
                grouped[key] = MostUsedEntry(
                    provider_id=event.provider_id, scope=event.scope, usage_count=1, last_used=event.at,
                )
            else:
                entry.usage_count += 1
                entry.last_used = max(entry.last_used, event.at)
        ranked = sorted(grouped.values(), key=lambda e: (e.usage_count, e.last_used), reverse=True)
        return ranked[:limit]

    def get_credential_health(
        self,
        user_id: str,
        credentials: Iterable[CredentialSummary],
        rotation_days: int = DEFAULT_ROTATION_DAYS,
        recommended_providers: Iterable[str] = DEFAULT_RECOMMENDED_PROVIDERS,
    ) -> CredentialHealthReport:
        """Flag credentials older than *rotation_days* and missing providers."""
        now = self._clock()
        report = CredentialHealthReport(user_id=user_id)
        seen: set[str] = set()

        for cred in credentials:
            report.total_credentials += 1
            seen.add(cred.provider_id)
            age_days = (now - cred.created_at).days
            status = CredentialHealth(
                provider_id=cred.provider_id,
                scope=cred.scope,
                age_days=age_days,
                health="healthy",
                created_at=cred.created_at,
                updated_at=cred.updated_at,
            )
            if age_days > rotation_days:
                status.health = "warning"
                status.reason = f"Token is {age_days} days old. Consider rotating for security."
                report.warning.append(status)
                report.recommendations.append(HealthRecommendation(
                    priority="medium",
                    action=f"Rotate {cred.provider_id} token",
                    reason=f"Token is older than {rotation_days} days",
                    scope=cred.scope,
                ))
            else:
                report.healthy.append(status)

        for provider_id in recommended_providers:
            if provider_id not in seen:
                report.recommendations.append(HealthRecommendation(
                    priority="low",
                    action=f"Add {provider_id} credential",
                    reason="Recommended for full functionality",
                ))
        return report

    def clear(self) -> None:
        self._events.clear()


def _group_by_provider(credentials: Iterable[CredentialSummary]) -> dict[str, list[CredentialSummary]]:
    grouped: dict[str, list[CredentialSummary]] = {}
    for cred in credentials:
        grouped.setdefault(cred.provider_id, []).append(cred)
    return grouped


def _add_ai_provider(priority: str, reason: str) -> HealthRecommendation:
    return HealthRecommendation(
        priority=priority,
        action="Add an AI provider",
        reason=reason,
        command="credvault help openai",
    )


def get_recommendations(
    user_id: str,
    credentials: Iterable[CredentialSummary],
    context: RecommendationContext = RecommendationContext.GENERAL,
) -> RecommendationReport:
    """What to set up next, for a task context or in general.

    Task contexts (``clone_repo``, ``ai_features``) also report whether the
    user is ready for that task.
    """
    grouped = _group_by_provider(credentials)
    has_ai = any(p in grouped for p in AI_PROVIDERS)
    report = RecommendationReport(user_id=user_id, context=context)

    if context == RecommendationContext.CLONE_REPO:
        report.ready = "github" in grouped
        if not report.ready:
            report.recommendations.append(HealthRecommendation(
                priority="critical",
                action="Set up GitHub credential",
                reason="Required to clone private repositories",
                command="credvault help github",
            ))
    elif context == RecommendationContext.AI_FEATURES:
        report.ready = has_ai
        if not has_ai:
            report.recommendations.append(
                _add_ai_provider("high", "Required for AI-powered code generation and analysis"))
    else:
        if not grouped:
            report.recommendations.append(HealthRecommendation(
                priority="high",
                action="Set up your first credential",
                reason="No credentials are stored yet",
                command="credvault providers",
            ))
        if "github" in grouped and not has_ai:
            report.recommendations.append(
                _add_ai_provider("medium", "Unlock AI-powered features like code generation and analysis"))
        for provider_id, creds in grouped.items():
            if len(creds) > CROWDED_PROVIDER_THRESHOLD:
                report.recommendations.append(HealthRecommendation(
                    priority="low",
                    action=f"Organize your {provider_id} credentials",
                    reason=f"You have {len(creds)} {provider_id} credentials; project scopes can group them",
                    command=f"credvault project set <name> {provider_id}",
                ))

    count = len(report.recommendations)
    report.summary = f"{count} recommendation{'' if count == 1 else 's'} available"
    return report


def suggest_next_actions(user_id: str, credentials: Iterable[CredentialSummary]) -> NextActions:
    """Quick actions and tips based on what is stored."""
    grouped = _group_by_provider(credentials)
    actions = NextActions(user_id=user_id)

    if not grouped:
        actions.quick_actions.append(HealthRecommendation(
            priority="high",
            action="Set up GitHub credential",
            reason="Required for repository operations",
            command="credvault help github",
        ))
        actions.quick_actions.append(HealthRecommendation(
            priority="medium",
            action="Set up OpenAI credential",
            reason="Enables AI-powered features",
            command="credvault help openai",
        ))
        actions.tips.append("Use scopes to organize multiple accounts, e.g. --scope work")
        return actions

    if "github" in grouped and not any(p in grouped for p in AI_PROVIDERS):
        actions.quick_actions.append(
            _add_ai_provider("medium", "Unlock AI code generation and analysis"))

    for provider_id, creds in grouped.items():
        if len(creds) > 1:
            scopes = ", ".join(c.scope or "primary" for c in creds)
            actions.tips.append(f"You have {len(creds)} {provider_id} credentials: {scopes}")
    actions.tips.append("Check a credential without storing it with 'credvault validate'")
    return actions
