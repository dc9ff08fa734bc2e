"""CLI command for the readiness probe.

Usage:
    switchboard probe
    SWITCHBOARD_LEASE_DURATION=60 switchboard probe --log-level debug
"""

from __future__ import annotations

import typer
from pydantic import ValidationError

from switchboard.config import get_settings

app = typer.Typer(help="Run one leader readiness probe cycle")


@app.callback(invoke_without_command=True)
def probe(
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level override: debug, info, warning, error",
    ),
    log_file: str | None = typer.Option(
        None,
        "--log-file",
        help="Probe log path override (truncated on every run)",
    ),
) -> None:
    """Report ready (exit 0) only on the replica holding the leader lease.

    Exits 1 when the local listener is down, another replica holds the
    lease, or the lease store is unavailable.
    """
    from switchboard.probe import probe as probe_once
    from switchboard.probe import report_invalid_configuration

    try:
        settings = get_settings()
    except ValidationError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        report_invalid_configuration(e, log_file)
        raise typer.Exit(code=1) from e

    overrides: dict[str, str] = {}
    if log_level:
        overrides["log_level"] = log_level
    if log_file:
        overrides["log_file"] = log_file
    if overrides:
        settings = settings.model_copy(update=overrides)

    decision = probe_once(settings)
    raise typer.Exit(code=decision.exit_code)
