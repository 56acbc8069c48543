"""credvault providers / help: describe supported providers."""

import typer
from rich.console import Console
from rich.table import Table
from rich import box

from credvault.exceptions import ProviderUnknownError
from credvault.providers.registry import default_registry

console = Console()


def providers_list():
    """List every supported provider with its format rules.

    Example:
        credvault providers
    """
    registry = default_registry()
    table = Table(
        box=box.ROUNDED,
        header_style="bold dim",
        title=f"[bold]{len(registry)} Supported Providers[/bold]",
    )
    table.add_column("Id", style="cyan", width=11)
    table.add_column("Name", width=10)
    table.add_column("Prefixes", width=36)
    table.add_column("Length", justify="right", width=8, style="dim")
    table.add_column("Live?", width=6)

    for provider in registry.get_all():
        table.add_row(
            provider.provider_id,
            provider.display_name,
            ", ".join(provider.token_prefixes) or "[dim](any)[/dim]",
            f"{provider.min_length}-{provider.max_length}",
            "[green]yes[/green]" if provider.supports_live_validation else "[dim]no[/dim]",
        )
    console.print(table)


def provider_help(provider: str = typer.Argument(None, help="Provider id, e.g. github")):
    """Where to create a credential and what it must look like.

    Example:
        credvault help github
    """
    registry = default_registry()
    try:
        targets = [registry.get(provider)] if provider else registry.get_all()
    except ProviderUnknownError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    for p in targets:
        console.print(f"[bold cyan]{p.display_name}[/bold cyan] [dim]({p.provider_id})[/dim]")
        console.print(f"  Get one at: {p.docs_url}")
        if p.token_prefixes:
            console.print(f"  Prefixes:   {', '.join(p.token_prefixes)}")
        console.print(f"  Length:     {p.min_length}-{p.max_length} characters")
        if p.recommended_scopes:
            console.print(f"  Scopes:     {', '.join(p.recommended_scopes)}")
        console.print()
