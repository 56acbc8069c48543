"""credvault set/get/delete/list/status/health: operate on the configured store.

All commands open the SQL store named by CREDVAULT_DATABASE_URL and need the
same CREDVAULT_MASTER_KEY that encrypted the data.
"""

import asyncio
from typing import Any, Awaitable, Callable

import typer
from rich.console import Console
from rich.table import Table
from rich import box

from credvault.core.vault import VaultController
from credvault.exceptions import RateLimitError, ValidationError, VaultError

console = Console()

USER_OPTION = typer.Option("default", "--user", "-u", help="Owning user id")
SCOPE_OPTION = typer.Option(None, "--scope", "-s", help="Scope, e.g. project:web or project:web:prod")


async def _with_vault(action: Callable[[VaultController], Awaitable[Any]]) -> Any:
    from credvault.factory import create_persistent_vault
    vault, engine = await create_persistent_vault()
    try:
        return await action(vault)
    finally:
        await engine.dispose()


def _run(action: Callable[[VaultController], Awaitable[Any]]) -> Any:
    try:
        return asyncio.run(_with_vault(action))
    except RateLimitError as exc:
        console.print(f"[red]Rate limited:[/red] retry in {exc.retry_after_seconds}s")
        raise typer.Exit(2)
    except ValidationError as exc:
        console.print(f"[red]Invalid:[/red] {exc}")
        if exc.hint:
            console.print(f"[dim]{exc.hint}[/dim]")
        raise typer.Exit(1)
    except VaultError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)


def set_credential(
    provider: str = typer.Argument(..., help="Provider id, e.g. github"),
    value: str = typer.Option(..., "--value", prompt=True, hide_input=True, help="Credential value"),
    user: str = USER_OPTION,
    scope: str = SCOPE_OPTION,
    skip_live: bool = typer.Option(False, "--skip-live", help="Skip the live check against the provider API"),
):
    """Validate, encrypt and store a credential. The value is prompted for, hidden.

    Example:
        credvault set github --user alice --scope project:web
    """
    result = _run(lambda vault: vault.set_credential(
        provider, value, user, scope=scope, skip_live_validation=skip_live,
    ))
    state = "[green]verified[/green]" if result.validated else "[yellow]unverified[/yellow]"
    console.print(f"Stored {provider} credential {result.masked_value} ({state})")
    if result.provider_user:
        console.print(f"[dim]Provider user: {result.provider_user}[/dim]")
    if result.warning:
        console.print(f"[yellow]Warning:[/yellow] {result.warning}")


def get_credential(
    provider: str = typer.Argument(..., help="Provider id"),
    user: str = USER_OPTION,
    scope: str = SCOPE_OPTION,
):
    """Show a stored credential, masked.

    Example:
        credvault get github --user alice
    """
    result = _run(lambda vault: vault.get_credential(provider, user, scope=scope))
    if not result.success:
        console.print(f"[yellow]No {provider} credential found[/yellow]")
        raise typer.Exit(1)
    console.print(f"{provider}: {result.masked_value}")


def delete_credential(
    provider: str = typer.Argument(..., help="Provider id"),
    user: str = USER_OPTION,
    scope: str = SCOPE_OPTION,
    confirm: bool = typer.Option(False, "--confirm", help="Required to actually delete"),
):
    """Delete a stored credential. Does nothing without --confirm.

    Example:
        credvault delete github --user alice --confirm
    """
    result = _run(lambda vault: vault.delete_credential(provider, user, scope=scope, confirm=confirm))
    if result.needs_confirmation:
        console.print(f"[yellow]{result.message}[/yellow]")
        raise typer.Exit(1)
    console.print(result.message)
    if not result.removed:
        raise typer.Exit(1)


def list_credentials(user: str = USER_OPTION):
    """List a user's credentials. Values are never shown.

    Example:
        credvault list --user alice
    """
    result = _run(lambda vault: vault.list_credentials(user))
    if not result.total:
        console.print(f"[dim]No credentials stored for {user}.[/dim]")
        return

    table = Table(box=box.ROUNDED, header_style="bold dim", title=f"[bold]{result.total} Credentials[/bold]")
    table.add_column("Provider", style="cyan", width=11)
    table.add_column("Scope", width=30)
    table.add_column("Verified", width=9)
    table.add_column("Updated", style="dim", width=20)
    for cred in result.credentials:
        table.add_row(
            cred.provider_id,
            cred.scope or "[dim](primary)[/dim]",
            "[green]yes[/green]" if cred.metadata.get("validated") else "[dim]no[/dim]",
            cred.updated_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


def status(user: str = USER_OPTION):
    """Per-provider credential counts.

    Example:
        credvault status --user alice
    """
    result = _run(lambda vault: vault.get_status(user))
    console.print(f"[bold]{result.total_credentials}[/bold] credentials for {user}")
    for provider_id in result.available_providers:
        count = result.by_provider.get(provider_id, 0)
        marker = "[green]●[/green]" if count else "[dim]○[/dim]"
        console.print(f"  {marker} {provider_id:<10} {count}")


def health(user: str = USER_OPTION):
    """Rotation warnings and missing-provider recommendations.

    Example:
        credvault health --user alice
    """
    report = _run(lambda vault: vault.get_credential_health(user))
    console.print(f"[bold]{report.total_credentials}[/bold] credentials, "
                  f"[green]{len(report.healthy)} healthy[/green], "
                  f"[yellow]{len(report.warning)} need rotation[/yellow]")
    for item in report.warning:
        console.print(f"  [yellow]![/yellow] {item.provider_id} {item.scope or ''} {item.reason}")
    for rec in report.recommendations:
        console.print(f"  [dim]{rec.priority}:[/dim] {rec.action}")


def recommend(
    user: str = USER_OPTION,
    context: str = typer.Option(None, "--context", "-c", help="clone_repo or ai_features; general when omitted"),
):
    """Suggested setup steps, optionally for a task.

    Example:
        credvault recommend --context clone_repo
    """
    report = _run(lambda vault: vault.get_recommendations(user, context=context))
    if report.ready is not None:
        state = "[green]ready[/green]" if report.ready else "[red]not ready[/red]"
        console.print(f"{report.context.value}: {state}")
    console.print(f"[dim]{report.summary}[/dim]")
    for rec in report.recommendations:
        console.print(f"  [dim]{rec.priority}:[/dim] {rec.action}  [dim]{rec.reason}[/dim]")
        if rec.command:
            console.print(f"      [cyan]{rec.command}[/cyan]")


def next_actions(user: str = USER_OPTION):
    """Quick actions and tips based on what is stored.

    Example:
        credvault next --user alice
    """
    actions = _run(lambda vault: vault.suggest_next_actions(user))
    for item in actions.quick_actions:
        console.print(f"  [bold]→[/bold] {item.action}  [dim]{item.reason}[/dim]")
    for tip in actions.tips:
        console.print(f"  [dim]tip:[/dim] {tip}")
