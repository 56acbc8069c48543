"""CLI commands via Typer's test runner."""

import pytest
from typer.testing import CliRunner

from credvault.cli.main import app
from credvault.version import __version__

from tests.conftest import MASTER_KEY, OPENAI_KEY

runner = CliRunner()


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    monkeypatch.setenv("CREDVAULT_MASTER_KEY", MASTER_KEY)
    monkeypatch.setenv("CREDVAULT_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'vault.db'}")
    monkeypatch.setenv("CREDVAULT_LOG_LEVEL", "WARNING")


class TestInspection:

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_providers(self):
        result = runner.invoke(app, ["providers"])
        assert result.exit_code == 0
        for provider_id in ("github", "gitlab", "openai", "anthropic", "bitbucket"):
            assert provider_id in result.output

    def test_help_for_provider(self):
        result = runner.invoke(app, ["help", "github"])
        assert result.exit_code == 0
        assert "https://github.com/settings/tokens" in result.output

    def test_help_unknown_provider(self):
        result = runner.invoke(app, ["help", "jira"])
        assert result.exit_code == 1

    def test_config_masks_master_key(self, cli_env):
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert MASTER_KEY not in result.output


class TestValidate:

    def test_offline_valid(self):
        result = runner.invoke(app, ["validate", "openai", "--value", OPENAI_KEY, "--offline"])
        assert result.exit_code == 0
        assert "Valid" in result.output

    def test_offline_invalid(self):
        result = runner.invoke(app, ["validate", "github", "--value", "abc", "--offline"])
        assert result.exit_code == 1
        assert "minimum" in result.output


class TestCredentialCommands:

    def test_set_get_list_delete(self, cli_env):
        result = runner.invoke(app, ["set", "openai", "--value", OPENAI_KEY, "--user", "alice"])
        assert result.exit_code == 0, result.output
        assert OPENAI_KEY not in result.output

        result = runner.invoke(app, ["get", "openai", "--user", "alice"])
        assert result.exit_code == 0
        assert "sk-p...proj" in result.output

        result = runner.invoke(app, ["list", "--user", "alice"])
        assert result.exit_code == 0
        assert "openai" in result.output

        result = runner.invoke(app, ["delete", "openai", "--user", "alice"])
        assert result.exit_code == 1
        assert "confirm" in result.output

        result = runner.invoke(app, ["delete", "openai", "--user", "alice", "--confirm"])
        assert result.exit_code == 0

        result = runner.invoke(app, ["get", "openai", "--user", "alice"])
        assert result.exit_code == 1

    def test_set_invalid_format(self, cli_env):
        result = runner.invoke(app, ["set", "openai", "--value", "nope", "--user", "alice"])
        assert result.exit_code == 1
        assert "Invalid" in result.output

    def test_status_and_health(self, cli_env):
        runner.invoke(app, ["set", "openai", "--value", OPENAI_KEY, "--user", "alice"])
        result = runner.invoke(app, ["status", "--user", "alice"])
        assert result.exit_code == 0
        assert "1" in result.output
        result = runner.invoke(app, ["health", "--user", "alice"])
        assert result.exit_code == 0
        assert "Add github credential" in result.output

    def test_recommend_and_next(self, cli_env):
        result = runner.invoke(app, ["recommend", "--user", "alice", "--context", "clone_repo"])
        assert result.exit_code == 0
        assert "not ready" in result.output
        assert "Set up GitHub credential" in result.output

        result = runner.invoke(app, ["recommend", "--user", "alice", "--context", "deploy"])
        assert result.exit_code == 1

        result = runner.invoke(app, ["next", "--user", "alice"])
        assert result.exit_code == 0
        assert "Set up OpenAI credential" in result.output


class TestProjectCommands:

    def test_project_lifecycle(self, cli_env):
        result = runner.invoke(app, ["project", "set", "web", "openai", "--value", OPENAI_KEY,
                                     "--env", "prod", "--user", "alice"])
        assert result.exit_code == 0, result.output
        assert OPENAI_KEY not in result.output

        result = runner.invoke(app, ["project", "get", "web", "openai", "--env", "prod", "--user", "alice"])
        assert result.exit_code == 0
        assert "sk-p...proj" in result.output

        result = runner.invoke(app, ["project", "clone", "web", "web2", "--user", "alice"])
        assert result.exit_code == 0
        assert "Cloned 1" in result.output

        result = runner.invoke(app, ["project", "list", "--user", "alice"])
        assert result.exit_code == 0
        assert "web2" in result.output

        result = runner.invoke(app, ["project", "delete", "web", "--user", "alice"])
        assert result.exit_code == 1

        result = runner.invoke(app, ["project", "delete", "web", "--user", "alice", "--confirm"])
        assert result.exit_code == 0
        assert "Deleted 1" in result.output

        result = runner.invoke(app, ["project", "get", "web", "openai", "--env", "prod", "--user", "alice"])
        assert result.exit_code == 1
