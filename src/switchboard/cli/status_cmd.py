"""CLI command for inspecting the current lease.

Usage:
    switchboard status
    switchboard status --format json
"""

from __future__ import annotations

import asyncio
import json
import time

import typer

from switchboard.cli.common import load_settings
from switchboard.config import Settings
from switchboard.distributed.leader import ClaimProtocol, classify_lease
from switchboard.lease.factory import create_lease_store
from switchboard.lease.store import LeaseStoreError

app = typer.Typer(help="Show the current leader lease")


async def _read_status(settings: Settings) -> dict[str, object]:
    store = create_lease_store(settings)
    try:
        lease = await ClaimProtocol(store, lease_duration=settings.lease_duration).current_lease()
    finally:
        await store.close()

    now = int(time.time())
    state = classify_lease(lease, settings.identity, now, settings.lease_duration)
    return {
        "identity": settings.identity,
        "state": state.value,
        "claimant": lease.claimant if lease else None,
        "claimedAt": lease.claimed_at if lease else None,
        "age": lease.age(now) if lease else None,
        "expired": state.is_expired,
        "leaseDuration": settings.lease_duration,
    }


@app.callback(invoke_without_command=True)
def status(
    output_format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: text, json",
    ),
) -> None:
    """Print the lease holder, its age and whether the lease has expired."""
    from rich.console import Console

    console = Console()
    settings = load_settings()

    try:
        result = asyncio.run(_read_status(settings))
    except (LeaseStoreError, ValueError) as e:
        console.print(f"[red]Could not read lease:[/red] {e}")
        raise typer.Exit(code=1) from e

    if output_format == "json":
        typer.echo(json.dumps(result, indent=2))
        return

    if result["claimant"] is None:
        console.print("[yellow]No lease held[/yellow]")
        return

    color = "red" if result["expired"] else "green"
    console.print(f"[bold]Claimant:[/bold]  {result['claimant']}")
    console.print(f"[bold]Age:[/bold]       {result['age']}s of {result['leaseDuration']}s")
    console.print(f"[bold]State:[/bold]     [{color}]{result['state']}[/{color}]")
