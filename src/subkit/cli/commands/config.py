# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Configuration inspection CLI commands."""

from __future__ import annotations

import typer

app = typer.Typer()


def _mask(secret: str) -> str:
    if not secret:
        return "(not set)"
    return f"{secret[:4]}..." if len(secret) > 8 else "****"


@app.command()
def show() -> None:
    """Show effective settings and the cache TTL table."""
    from rich.console import Console
    from rich.table import Table

    from subkit.core.config import get_settings

    settings = get_settings()
    console = Console()

    table = Table(title="Settings")
    table.add_column("Setting", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("API base URL", settings.api_base_url)
    table.add_row("API token", _mask(settings.api_token))
    table.add_row("API timeout", f"{settings.api_timeout}s")
    table.add_row("Retry max attempts", str(settings.retry_max_attempts))
    table.add_row("Retry base delay", f"{settings.retry_base_delay}s")
    table.add_row("Retry max delay", f"{settings.retry_max_delay}s")
    table.add_row("Retry jitter", f"{settings.retry_jitter_ratio:.0%}")
    table.add_row("Bulk concurrency", str(settings.bulk_max_concurrency or "unbounded"))
    table.add_row("Cache sweep interval", f"{settings.cache_sweep_interval}s")
    console.print(table)

    ttl_table = Table(title="Cache TTLs")
    ttl_table.add_column("Type", style="bold")
    ttl_table.add_column("TTL", justify="right")
    for cache_type, ttl in sorted(settings.cache_ttls.items()):
        ttl_table.add_row(cache_type, f"{ttl:g}s")
    ttl_table.add_row("(default)", f"{settings.cache_default_ttl:g}s")
    console.print(ttl_table)
