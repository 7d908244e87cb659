# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Bulk redemption-code operations from the command line."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any

import typer

from subkit.core.constants import BulkAction
from subkit.resilience.bulk import BulkOperationResult


class OutputFormat(StrEnum):
    CONSOLE = "console"
    JSON = "json"


def bulk_command(
    action: Annotated[BulkAction, typer.Argument(help="Operation to apply to every code")],
    code_ids: Annotated[list[str], typer.Argument(help="Redemption code IDs")],
    reason: Annotated[
        str | None, typer.Option("--reason", help="Deactivation reason")
    ] = None,
    activation_date: Annotated[
        datetime | None,
        typer.Option("--activation-date", help="Scheduled activation (ISO 8601)"),
    ] = None,
    updates: Annotated[
        str | None, typer.Option("--updates", help="JSON object of fields to update")
    ] = None,
    fmt: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Output format")
    ] = OutputFormat.CONSOLE,
) -> None:
    """Activate, deactivate or update many redemption codes at once."""
    options: dict[str, Any] = {}
    if reason:
        options["reason"] = reason
    if activation_date:
        options["activation_date"] = activation_date
    if updates is not None:
        try:
            parsed = json.loads(updates)
        except json.JSONDecodeError as exc:
            typer.echo(f"Invalid --updates JSON: {exc}", err=True)
            raise typer.Exit(2) from exc
        if not isinstance(parsed, dict):
            typer.echo("--updates must be a JSON object", err=True)
            raise typer.Exit(2)
        options["updates"] = parsed

    result = asyncio.run(_async_bulk(code_ids, action.value, options))

    if fmt == OutputFormat.JSON:
        typer.echo(result.model_dump_json(indent=2))
    else:
        _print_console(result)

    if result.failed:
        raise typer.Exit(1)


async def _async_bulk(
    code_ids: list[str], action: str, options: dict[str, Any]
) -> BulkOperationResult:
    from subkit.admin.client import RedemptionAdminClient

    client = RedemptionAdminClient.from_settings()
    return await client.bulk_operation(code_ids, action, options)


def _print_console(result: BulkOperationResult) -> None:
    from rich.console import Console
    from rich.table import Table

    console = Console()
    table = Table(title=f"Bulk {result.operation}")
    table.add_column("Code", style="bold")
    table.add_column("Status")
    table.add_column("Attempts", justify="right")
    table.add_column("Error")

    for item in result.results:
        status = "[green]ok[/green]" if item.success else "[red]failed[/red]"
        error = item.error or ""
        if item.error_code:
            error = f"{item.error_code}: {error}"
        table.add_row(item.target_id, status, str(item.attempts), error)

    console.print(table)
    console.print(result.summary())
