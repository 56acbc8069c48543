"""credvault project set/get/list/clone/delete: project- and environment-scoped credentials."""

import typer
from rich.console import Console
from rich.table import Table
from rich import box

from credvault.cli.commands.credentials import USER_OPTION, _run
from credvault.core.projects import DEFAULT_ENVIRONMENT, ProjectCredentialManager

console = Console()

ENV_OPTION = typer.Option(DEFAULT_ENVIRONMENT, "--env", "-e", help="Environment, e.g. prod")


def project_set(
    project: str = typer.Argument(..., help="Project name"),
    provider: str = typer.Argument(..., help="Provider id, e.g. github"),
    value: str = typer.Option(..., "--value", prompt=True, hide_input=True, help="Credential value"),
    environment: str = ENV_OPTION,
    user: str = USER_OPTION,
    skip_live: bool = typer.Option(False, "--skip-live", help="Skip the live check against the provider API"),
):
    """Store a credential for a project environment.

    Example:
        credvault project set web github --env prod
    """
    result = _run(lambda vault: ProjectCredentialManager(vault).set_project_credential(
        user, project, provider, value, environment=environment, skip_live_validation=skip_live,
    ))
    console.print(f"Stored {provider} credential {result.masked_value} for {project} ({environment})")
    if result.warning:
        console.print(f"[yellow]Warning:[/yellow] {result.warning}")


def project_get(
    project: str = typer.Argument(..., help="Project name"),
    provider: str = typer.Argument(..., help="Provider id"),
    environment: str = ENV_OPTION,
    user: str = USER_OPTION,
):
    """Show a project credential, masked.

    Example:
        credvault project get web github --env prod
    """
    result = _run(lambda vault: ProjectCredentialManager(vault).get_project_credential(
        user, project, provider, environment=environment,
    ))
    if not result.success:
        console.print(f"[yellow]No {provider} credential for {project} ({environment})[/yellow]")
        raise typer.Exit(1)
    console.print(f"{project}/{environment} {provider}: {result.masked_value}")


def project_list(user: str = USER_OPTION):
    """List projects with their environments and providers.

    Example:
        credvault project list --user alice
    """
    projects = _run(lambda vault: ProjectCredentialManager(vault).list_projects(user))
    if not projects:
        console.print(f"[dim]No projects for {user}.[/dim]")
        return

    table = Table(box=box.ROUNDED, header_style="bold dim", title=f"[bold]{len(projects)} Projects[/bold]")
    table.add_column("Project", style="cyan", width=20)
    table.add_column("Environments", width=24)
    table.add_column("Providers", width=30)
    table.add_column("Count", justify="right", width=6, style="dim")
    for p in projects:
        table.add_row(p.name, ", ".join(p.environments), ", ".join(p.providers), str(p.credential_count))
    console.print(table)


def project_clone(
    source: str = typer.Argument(..., help="Project to copy from"),
    target: str = typer.Argument(..., help="Project to copy into"),
    user: str = USER_OPTION,
):
    """Copy every credential of one project into another.

    Example:
        credvault project clone web web-staging
    """
    result = _run(lambda vault: ProjectCredentialManager(vault).clone_project(user, source, target))
    console.print(f"Cloned {len(result.cloned)} credentials from {source} to {target}")
    for entry in result.failed:
        console.print(f"  [red]✗[/red] {entry.provider_id} ({entry.environment}): {entry.error}")
    if result.failed:
        raise typer.Exit(1)


def project_delete(
    project: str = typer.Argument(..., help="Project name"),
    user: str = USER_OPTION,
    confirm: bool = typer.Option(False, "--confirm", help="Required to actually delete"),
):
    """Delete every credential of a project. Does nothing without --confirm.

    Example:
        credvault project delete web --confirm
    """
    result = _run(lambda vault: ProjectCredentialManager(vault).delete_project(user, project, confirm=confirm))
    if result.needs_confirmation:
        console.print(f"[yellow]{result.message}[/yellow]")
        raise typer.Exit(1)
    console.print(result.message)
