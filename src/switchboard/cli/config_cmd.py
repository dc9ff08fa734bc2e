"""CLI command for showing the effective configuration.

Usage:
    switchboard config
"""

from __future__ import annotations

import typer

from switchboard.cli.common import load_settings

app = typer.Typer(help="Show the effective probe configuration")


@app.callback(invoke_without_command=True)
def show_config() -> None:
    """Print every setting with its environment variable and current value."""
    from rich.console import Console
    from rich.table import Table

    settings = load_settings()
    prefix = settings.model_config.get("env_prefix", "")

    table = Table(title="switchboard configuration")
    table.add_column("Variable")
    table.add_column("Value")

    for name, field in type(settings).model_fields.items():
        alias = field.validation_alias
        env_name = alias if isinstance(alias, str) else f"{prefix}{name}".upper()
        table.add_row(env_name, str(getattr(settings, name)))

    Console().print(table)
