"""credvault validate: check a credential without storing it."""

import asyncio

import typer
from rich.console import Console

from credvault.exceptions import VaultError

console = Console()


async def _validate(provider: str, value: str, live: bool):
    from credvault.factory import create_vault
    vault = create_vault(callbacks=[])
    return await vault.validate_credential(provider, value, live=live)


def validate_credential(
    provider: str = typer.Argument(..., help="Provider id, e.g. github"),
    value: str = typer.Option(..., "--value", prompt=True, hide_input=True, help="Credential to check"),
    offline: bool = typer.Option(False, "--offline", help="Skip the live check against the provider API"),
):
    """Check a credential's format and, unless --offline, its liveness.

    Nothing is stored. Exit code 1 when the credential is rejected.

    Example:
        credvault validate github --offline
    """
    try:
        result = asyncio.run(_validate(provider, value, live=not offline))
    except VaultError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    if not result.valid:
        console.print(f"[red]Invalid:[/red] {result.reason}")
        if result.hint:
            console.print(f"[dim]{result.hint}[/dim]")
        raise typer.Exit(1)

    line = "[green]Valid[/green]"
    if result.validated:
        line += " [dim](confirmed by provider"
        line += f", user {result.provider_user})[/dim]" if result.provider_user else ")[/dim]"
    console.print(line)
    if result.warning:
        console.print(f"[yellow]Warning:[/yellow] {result.warning}")
