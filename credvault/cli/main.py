"""credvault CLI: Typer application."""

import logging

import typer
from rich.console import Console

from credvault.version import __version__

app = typer.Typer(
    name="credvault",
    help="credvault: encrypted, rate-limited credential storage for GitHub, GitLab, OpenAI, Anthropic and Bitbucket.",
    no_args_is_help=True,
    invoke_without_command=True,
)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-v", is_eager=True, help="Show version"),
    log_level: str = typer.Option(None, "--log-level", help="Override CREDVAULT_LOG_LEVEL"),
):
    """credvault CLI."""
    if version:
        console.print(f"credvault v{__version__}")
        raise typer.Exit()
    if log_level is None:
        from credvault.config import config
        log_level = config.log_level
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


# ── Inspection ──────────────────────────────────────────────────────────────
from credvault.cli.commands import config, providers, validate  # noqa: E402

app.command(name="config", help="Show resolved configuration")(config.config_show)
app.command(name="providers", help="List supported providers and their token rules")(providers.providers_list)
app.command(name="help", help="How to obtain a credential for a provider")(providers.provider_help)
app.command(name="validate", help="Check a credential's format (and liveness) without storing it")(validate.validate_credential)

# ── Credentials ─────────────────────────────────────────────────────────────
from credvault.cli.commands import credentials  # noqa: E402

app.command(name="set", help="Validate, encrypt and store a credential")(credentials.set_credential)
app.command(name="get", help="Show a stored credential (masked)")(credentials.get_credential)
app.command(name="delete", help="Delete a stored credential")(credentials.delete_credential)
app.command(name="list", help="List a user's credentials")(credentials.list_credentials)
app.command(name="status", help="Per-provider credential counts")(credentials.status)
app.command(name="health", help="Rotation warnings and recommendations")(credentials.health)
app.command(name="recommend", help="Suggested setup steps for a task or in general")(credentials.recommend)
app.command(name="next", help="Quick actions and tips")(credentials.next_actions)

# ── Projects ────────────────────────────────────────────────────────────────
from credvault.cli.commands import projects  # noqa: E402

project_app = typer.Typer(name="project", help="Project- and environment-scoped credentials.")
project_app.command("set", help="Store a credential for a project environment")(projects.project_set)
project_app.command("get", help="Show a project credential (masked)")(projects.project_get)
project_app.command("list", help="List projects")(projects.project_list)
project_app.command("clone", help="Copy a project's credentials into another project")(projects.project_clone)
project_app.command("delete", help="Delete every credential of a project")(projects.project_delete)
app.add_typer(project_app)


if __name__ == "__main__":
    app()
