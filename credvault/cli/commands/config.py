"""credvault config: show resolved configuration."""

from rich.console import Console
from rich.table import Table
from rich import box

from credvault.credentials.masking import mask_secret, mask_url

console = Console()

SENSITIVE = {"master_key", "encryption_salt"}

SECTIONS = [
    ("App", ["environment", "debug", "log_level"]),
    ("Encryption", ["master_key", "encryption_salt", "kdf_iterations"]),
    ("Database", ["database_url"]),
    ("Rate Limits", ["rate_limit_max_attempts", "rate_limit_window_seconds"]),
    ("Live Validation", [
        "live_validation_timeout_seconds",
        "validation_cache_ttl_seconds",
        "validation_cache_prefix_length",
        "validation_cache_max_entries",
        "user_agent",
    ]),
    ("Display & Hygiene", ["mask_visible_chars", "credential_rotation_days", "recommended_providers"]),
]


def config_show():
    """Show the resolved credvault configuration.

    Reads from environment variables and .env file.
    The master key, salt and any database password are masked.

    Example:
        credvault config
    """
    from credvault.config import VaultConfig
    cfg = VaultConfig()

    table = Table(
        box=box.ROUNDED,
        header_style="bold dim",
        show_lines=False,
        title="[bold]credvault Configuration[/bold]",
    )
    table.add_column("Key", style="cyan", width=34)
    table.add_column("Value", width=45)
    table.add_column("Env Var", style="dim", width=42)

    first = True
    for section_name, fields in SECTIONS:
        if not first:
            table.add_row("", "", "")
        first = False
        table.add_row(f"[bold dim]── {section_name} ──[/bold dim]", "", "")
        for attr in fields:
            val = getattr(cfg, attr, None)
            if val is None:
                display = "[dim](not set)[/dim]"
            elif attr in SENSITIVE:
                display = mask_secret(str(val))
            elif attr == "database_url":
                display = mask_url(str(val))
            else:
                display = str(val)
            table.add_row(f"  {attr}", display, f"CREDVAULT_{attr.upper()}")

    console.print()
    console.print(table)
    console.print()
    console.print("[dim]Source: environment variables + .env file (prefix: CREDVAULT_)[/dim]")
