# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Typer CLI application root."""

from __future__ import annotations

from typing import Annotated

import typer

from subkit.cli.commands import bulk as bulk_cmd
from subkit.cli.commands import config as config_cmd

app = typer.Typer(
    name="subkit",
    help="Subscription billing admin toolkit",
    no_args_is_help=True,
)

app.command(name="bulk")(bulk_cmd.bulk_command)
app.add_typer(config_cmd.app, name="config", help="Inspect effective configuration")


@app.callback()
def main(
    log_level: Annotated[
        str | None, typer.Option("--log-level", help="Override SUBKIT_LOG_LEVEL")
    ] = None,
) -> None:
    """Subscription billing admin toolkit."""
    from subkit.core.config import get_settings
    from subkit.core.logging import setup_logging

    settings = get_settings()
    setup_logging(log_level or settings.log_level, settings.log_format)


if __name__ == "__main__":
    app()
