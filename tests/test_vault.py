"""VaultController pipeline: set/get/delete/list/status/validate/clone.

Live validation is skipped here (skip_live_validation=True or providers
without live support); see test_vault_liveness.py for the network paths.
"""

import pytest

from credvault.exceptions import (
    DecryptionError, NotFoundError, ProviderUnknownError, RateLimitError, ValidationError,
)
from credvault.types import CredentialKey

from tests.conftest import (
    ANTHROPIC_KEY, GITHUB_TOKEN, GITHUB_TOKEN_2, OPENAI_KEY,
)

USER = "alice"


# ── set / get round trip ─────────────────────────────────────────────────────

class TestSetAndGet:

    async def test_set_returns_masked_value(self, vault):
        result = await vault.set_credential("github", GITHUB_TOKEN, USER, skip_live_validation=True)
        assert result.success is True
        assert result.masked_value == GITHUB_TOKEN[:4] + "..." + GITHUB_TOKEN[-4:]
        assert result.validated is False
        assert GITHUB_TOKEN not in result.model_dump_json()

    @pytest.mark.parametrize("provider_id,value,scope", [
        ("github", GITHUB_TOKEN, None),
        ("openai", OPENAI_KEY, "project:ml"),
        ("anthropic", ANTHROPIC_KEY, "project:ml:prod"),
    ])
    async def test_round_trip_through_raw_accessor(self, vault, provider_id, value, scope):
        await vault.set_credential(provider_id, value, USER, scope=scope, skip_live_validation=True)
        assert await vault.get_raw_credential(provider_id, USER, scope=scope) == value

    async def test_get_returns_masked_value(self, vault):
        await vault.set_credential("openai", OPENAI_KEY, USER)
        result = await vault.get_credential("openai", USER)
        assert result.success is True
        assert result.masked_value == "sk-p...proj"
        assert result.raw_available is True
        assert result.metadata["provider"] == "openai"
        assert OPENAI_KEY not in result.model_dump_json()

    async def test_get_missing_is_not_found(self, vault):
        result = await vault.get_credential("github", USER)
        assert result.success is False
        assert result.reason == "not_found"
        assert result.masked_value is None

    async def test_get_raw_missing_raises_not_found(self, vault):
        with pytest.raises(NotFoundError):
            await vault.get_raw_credential("github", USER)

    async def test_empty_scope_is_primary(self, vault):
        await vault.set_credential("openai", OPENAI_KEY, USER, scope="")
        assert (await vault.get_credential("openai", USER)).success

    async def test_auth_headers_from_stored_credential(self, vault):
        await vault.set_credential("anthropic", ANTHROPIC_KEY, USER)
        headers = await vault.get_auth_headers("anthropic", USER)
        assert headers["x-api-key"] == ANTHROPIC_KEY

    async def test_metadata_from_provider_and_caller(self, vault):
        await vault.set_credential("github", GITHUB_TOKEN, USER, skip_live_validation=True,
                                   metadata={"label": "ci"})
        result = await vault.get_credential("github", USER)
        assert result.metadata["label"] == "ci"
        assert result.metadata["token_prefix"] == "ghp_"
        assert result.metadata["validated"] is False

    async def test_users_are_isolated(self, vault):
        await vault.set_credential("openai", OPENAI_KEY, USER)
        assert (await vault.get_credential("openai", "bob")).reason == "not_found"

    async def test_decryption_error_propagates(self, vault, backend):
        await vault.set_credential("openai", OPENAI_KEY, USER)
        key = CredentialKey(user_id=USER, provider_id="openai")
        record = await backend.select_by_key(key)
        await backend.upsert(key, record.model_copy(update={"auth_tag": "00" * 16}))
        with pytest.raises(DecryptionError):
            await vault.get_credential("openai", USER)


# ── Upsert ───────────────────────────────────────────────────────────────────

class TestUpsert:

    async def test_second_set_overwrites_without_duplicating(self, vault):
        await vault.set_credential("github", GITHUB_TOKEN, USER, skip_live_validation=True)
        before = await vault.list_credentials(USER)
        await vault.set_credential("github", GITHUB_TOKEN_2, USER, skip_live_validation=True)
        after = await vault.list_credentials(USER)
        assert before.total == after.total == 1
        assert await vault.get_raw_credential("github", USER) == GITHUB_TOKEN_2


# ── Input validation ─────────────────────────────────────────────────────────

class TestValidationErrors:

    async def test_bad_format_raises_with_reason_and_hint(self, vault):
        with pytest.raises(ValidationError) as exc_info:
            await vault.set_credential("github", "abc", USER)
        err = exc_info.value
        assert "minimum 36" in err.reason
        assert "github.com/settings/tokens" in err.hint
        assert err.provider_id == "github"

    async def test_bad_format_touches_no_storage(self, vault, backend):
        with pytest.raises(ValidationError):
            await vault.set_credential("openai", "not-a-key", USER)
        assert len(backend) == 0

    async def test_unknown_provider(self, vault):
        with pytest.raises(ProviderUnknownError) as exc_info:
            await vault.set_credential("jira", "whatever-value-123456", USER)
        assert "github" in exc_info.value.known_providers

    @pytest.mark.parametrize("user_id", ["", "has space", "semi;colon", "x" * 256, None, "alice\n", "alice\r\n"])
    async def test_invalid_user_id_rejected(self, vault, user_id):
        with pytest.raises(ValidationError):
            await vault.set_credential("openai", OPENAI_KEY, user_id)

    async def test_trailing_newline_user_id_stores_nothing(self, vault, backend):
        with pytest.raises(ValidationError):
            await vault.set_credential("openai", OPENAI_KEY, USER + "\n")
        assert len(backend) == 0
        assert (await vault.list_credentials(USER)).total == 0

    async def test_overlong_scope_rejected(self, vault):
        with pytest.raises(ValidationError):
            await vault.set_credential("openai", OPENAI_KEY, USER, scope="s" * 256)

    async def test_secret_never_in_error_message(self, vault):
        bad = "sk-" + "x" * 300
        with pytest.raises(ValidationError) as exc_info:
            await vault.set_credential("openai", bad, USER)
        assert bad not in str(exc_info.value)


# ── Rate limiting ────────────────────────────────────────────────────────────

class TestRateLimiting:

    async def test_sixth_attempt_in_window_is_rate_limited(self, vault):
        for _ in range(5):
            with pytest.raises(ValidationError):
                await vault.set_credential("github", "abc", USER)
        with pytest.raises(RateLimitError) as exc_info:
            await vault.set_credential("github", GITHUB_TOKEN, USER, skip_live_validation=True)
        assert exc_info.value.retry_after_seconds > 0

    async def test_rate_limit_checked_before_format(self, vault):
        for _ in range(5):
            with pytest.raises(ValidationError):
                await vault.set_credential("github", "abc", USER)
        # a well-formed and a malformed value get the same answer
        with pytest.raises(RateLimitError):
            await vault.set_credential("github", "abc", USER)
        with pytest.raises(RateLimitError):
            await vault.set_credential("github", GITHUB_TOKEN, USER, skip_live_validation=True)

    async def test_success_resets_counter(self, vault):
        for _ in range(4):
            with pytest.raises(ValidationError):
                await vault.set_credential("github", "abc", USER)
        await vault.set_credential("github", GITHUB_TOKEN, USER, skip_live_validation=True)
        for _ in range(5):
            with pytest.raises(ValidationError):
                await vault.set_credential("github", "abc", USER)
        with pytest.raises(RateLimitError):
            await vault.set_credential("github", "abc", USER)

    async def test_window_expiry_allows_again(self, vault, clock):
        for _ in range(5):
            with pytest.raises(ValidationError):
                await vault.set_credential("github", "abc", USER)
        clock.advance(60)
        result = await vault.set_credential("github", GITHUB_TOKEN, USER, skip_live_validation=True)
        assert result.success

    async def test_operation_classes_are_independent(self, vault):
        for _ in range(5):
            with pytest.raises(ValidationError):
                await vault.set_credential("github", "abc", USER)
        assert (await vault.get_credential("github", USER)).reason == "not_found"
        assert (await vault.list_credentials(USER)).total == 0

    async def test_other_users_unaffected(self, vault):
        for _ in range(5):
            with pytest.raises(ValidationError):
                await vault.set_credential("github", "abc", USER)
        result = await vault.set_credential("github", GITHUB_TOKEN, "bob", skip_live_validation=True)
        assert result.success

    async def test_repeated_not_found_reads_are_limited(self, vault):
        for _ in range(5):
            await vault.get_credential("github", USER)
        with pytest.raises(RateLimitError):
            await vault.get_credential("github", USER)


# ── Delete ───────────────────────────────────────────────────────────────────

class TestDelete:

    async def test_without_confirm_keeps_record(self, vault):
        await vault.set_credential("github", GITHUB_TOKEN, USER, scope="project:A", skip_live_validation=True)
        result = await vault.delete_credential("github", USER, scope="project:A", confirm=False)
        assert result.success is False
        assert result.needs_confirmation is True
        assert result.removed is False
        assert (await vault.get_credential("github", USER, scope="project:A")).success

    async def test_confirmed_delete_removes(self, vault):
        await vault.set_credential("github", GITHUB_TOKEN, USER, scope="project:A", skip_live_validation=True)
        result = await vault.delete_credential("github", USER, scope="project:A", confirm=True)
        assert result.success is True
        assert result.removed is True
        assert (await vault.get_credential("github", USER, scope="project:A")).reason == "not_found"

    async def test_confirmed_delete_of_missing(self, vault):
        result = await vault.delete_credential("openai", USER, confirm=True)
        assert result.success is False
        assert result.removed is False
        assert result.needs_confirmation is False


# ── List / status ────────────────────────────────────────────────────────────

class TestListAndStatus:

    async def test_list_has_no_values(self, vault):
        await vault.set_credential("github", GITHUB_TOKEN, USER, skip_live_validation=True)
        await vault.set_credential("openai", OPENAI_KEY, USER, scope="project:ml")
        listing = await vault.list_credentials(USER)
        assert listing.total == 2
        dumped = listing.model_dump_json()
        assert GITHUB_TOKEN not in dumped
        assert OPENAI_KEY not in dumped
        assert {c.provider_id for c in listing.credentials} == {"github", "openai"}

    async def test_status(self, vault):
        await vault.set_credential("github", GITHUB_TOKEN, USER, skip_live_validation=True)
        await vault.set_credential("github", GITHUB_TOKEN_2, USER, scope="project:web", skip_live_validation=True)
        await vault.set_credential("openai", OPENAI_KEY, USER)
        status = await vault.get_status(USER)
        assert status.total_credentials == 3
        assert status.configured_providers == ["github", "openai"]
        assert status.by_provider == {"github": 2, "openai": 1}
        assert "bitbucket" in status.available_providers


# ── validate_credential ──────────────────────────────────────────────────────

class TestValidateCredential:

    async def test_github_short(self, vault):
        result = await vault.validate_credential("github", "abc")
        assert result.valid is False
        assert "minimum" in result.reason
        assert result.hint

    async def test_github_trailing_newline_invalid(self, vault):
        result = await vault.validate_credential("github", "ghp_" + "a" * 36 + "\n", live=False)
        assert result.valid is False

    async def test_github_well_formed_offline(self, vault):
        result = await vault.validate_credential("github", "ghp_" + "a" * 36, live=False)
        assert result.valid is True
        assert result.validated is False

    async def test_no_persistence(self, vault, backend):
        await vault.validate_credential("openai", OPENAI_KEY)
        assert len(backend) == 0

    async def test_unknown_provider_raises(self, vault):
        with pytest.raises(ProviderUnknownError):
            await vault.validate_credential("jira", "x")


# ── Clone ────────────────────────────────────────────────────────────────────

class TestClone:

    async def test_clone_is_independent(self, vault):
        await vault.set_credential("github", GITHUB_TOKEN, USER, scope="project:A", skip_live_validation=True)
        cloned = await vault.clone_credential("github", USER, "project:A", "project:B")
        assert cloned.scope == "project:B"
        assert cloned.masked_value == GITHUB_TOKEN[:4] + "..." + GITHUB_TOKEN[-4:]

        await vault.delete_credential("github", USER, scope="project:B", confirm=True)
        assert await vault.get_raw_credential("github", USER, scope="project:A") == GITHUB_TOKEN

    async def test_clone_records_origin(self, vault):
        await vault.set_credential("openai", OPENAI_KEY, USER)
        await vault.clone_credential("openai", USER, None, "project:ml")
        result = await vault.get_credential("openai", USER, scope="project:ml")
        assert result.metadata["cloned_from"] == "primary"

    async def test_overwriting_clone_leaves_source(self, vault):
        await vault.set_credential("github", GITHUB_TOKEN, USER, scope="project:A", skip_live_validation=True)
        await vault.clone_credential("github", USER, "project:A", "project:B")
        await vault.set_credential("github", GITHUB_TOKEN_2, USER, scope="project:B", skip_live_validation=True)
        assert await vault.get_raw_credential("github", USER, scope="project:A") == GITHUB_TOKEN

    async def test_clone_missing_source(self, vault):
        with pytest.raises(NotFoundError):
            await vault.clone_credential("github", USER, "project:A", "project:B")

    async def test_clone_to_same_scope_rejected(self, vault):
        with pytest.raises(ValidationError):
            await vault.clone_credential("github", USER, "project:A", "project:A")


# ── Side effects ─────────────────────────────────────────────────────────────

class TestSideEffects:

    async def test_callbacks_fire_on_mutations(self, vault, recorder):
        await vault.set_credential("openai", OPENAI_KEY, USER, scope="project:ml")
        await vault.clone_credential("openai", USER, "project:ml", "project:ml2")
        await vault.delete_credential("openai", USER, scope="project:ml2", confirm=True)
        hooks = [name for name, _ in recorder.events]
        assert hooks == ["on_credential_stored", "on_credential_cloned", "on_credential_deleted"]
        stored = recorder.events[0][1]
        assert stored == {"provider_id": "openai", "user_id": USER, "scope": "project:ml", "validated": False}

    async def test_no_callback_for_failed_or_unconfirmed(self, vault, recorder):
        with pytest.raises(ValidationError):
            await vault.set_credential("openai", "bad", USER)
        await vault.delete_credential("openai", USER, confirm=False)
        assert recorder.events == []

    async def test_failing_callback_does_not_fail_operation(self, vault):
        class Boom:
            async def on_credential_stored(self, **kwargs):
                raise RuntimeError("callback down")

        vault.callbacks.append(Boom())
        result = await vault.set_credential("openai", OPENAI_KEY, USER)
        assert result.success

    async def test_usage_recorded(self, vault):
        await vault.set_credential("openai", OPENAI_KEY, USER)
        await vault.get_credential("openai", USER)
        stats = vault.get_usage_stats(USER)
        assert stats.total_operations == 2
        assert stats.by_operation == {"set": 1, "get": 1}


# ── Help & health ────────────────────────────────────────────────────────────

class TestHelpAndHealth:

    def test_provider_help(self, vault):
        help_ = vault.get_credential_help("gitlab")
        assert help_["name"] == "GitLab"
        assert help_["token_prefixes"] == ["glpat-", "glft-", "glt_"]
        assert help_["token_url"].startswith("https://gitlab.com")

    def test_general_help_lists_all_providers(self, vault):
        help_ = vault.get_credential_help()
        assert [p["provider_id"] for p in help_["providers"]] == [
            "github", "gitlab", "openai", "anthropic", "bitbucket",
        ]

    def test_help_unknown_provider(self, vault):
        with pytest.raises(ProviderUnknownError):
            vault.get_credential_help("jira")

    async def test_health_recommends_missing_providers(self, vault):
        await vault.set_credential("anthropic", ANTHROPIC_KEY, USER)
        report = await vault.get_credential_health(USER)
        assert report.total_credentials == 1
        assert len(report.healthy) == 1
        actions = [r.action for r in report.recommendations]
        assert actions == ["Add github credential", "Add openai credential"]


# ── Guidance ─────────────────────────────────────────────────────────────────

class TestGuidance:

    async def test_clone_repo_readiness(self, vault):
        report = await vault.get_recommendations(USER, context="clone_repo")
        assert report.ready is False
        await vault.set_credential("github", GITHUB_TOKEN, USER, skip_live_validation=True)
        report = await vault.get_recommendations(USER, context="clone_repo")
        assert report.ready is True

    async def test_ai_features_readiness(self, vault):
        await vault.set_credential("openai", OPENAI_KEY, USER)
        report = await vault.get_recommendations(USER, context="ai_features")
        assert report.ready is True

    async def test_general_is_default(self, vault):
        report = await vault.get_recommendations(USER)
        assert report.context.value == "general"
        assert report.recommendations[0].action == "Set up your first credential"

    async def test_unknown_context_rejected(self, vault):
        with pytest.raises(ValidationError):
            await vault.get_recommendations(USER, context="deploy")

    async def test_next_actions(self, vault):
        await vault.set_credential("github", GITHUB_TOKEN, USER, skip_live_validation=True)
        actions = await vault.suggest_next_actions(USER)
        assert [a.action for a in actions.quick_actions] == ["Add an AI provider"]
        assert GITHUB_TOKEN not in actions.model_dump_json()
