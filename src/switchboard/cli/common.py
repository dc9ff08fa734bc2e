"""Shared helpers for CLI commands."""

from __future__ import annotations

import typer
from pydantic import ValidationError

from switchboard.config import Settings, get_settings


def load_settings() -> Settings:
    """Load settings, exiting with status 1 on invalid configuration."""
    try:
        return get_settings()
    except ValidationError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(code=1) from e
