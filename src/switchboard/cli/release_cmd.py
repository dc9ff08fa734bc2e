"""CLI command for releasing the lease on drain.

Usage:
    switchboard release
"""

from __future__ import annotations

import asyncio

import typer

from switchboard.cli.common import load_settings
from switchboard.config import Settings
from switchboard.distributed.leader import ClaimProtocol
from switchboard.lease.factory import create_lease_store
from switchboard.lease.store import LeaseStoreError

app = typer.Typer(help="Release the leader lease if this replica holds it")


async def _release(settings: Settings) -> bool:
    store = create_lease_store(settings)
    try:
        return await ClaimProtocol(store, lease_duration=settings.lease_duration).release(
            settings.identity
        )
    finally:
        await store.close()


@app.callback(invoke_without_command=True)
def release() -> None:
    """Clear the lease when it names this replica, so a standby can take over.

    Leases held by other replicas are left untouched.
    """
    settings = load_settings()
    try:
        released = asyncio.run(_release(settings))
    except (LeaseStoreError, ValueError) as e:
        typer.echo(f"Could not release lease: {e}", err=True)
        raise typer.Exit(code=1) from e

    if released:
        typer.echo(f"Released lease held by {settings.identity}")
    else:
        typer.echo(f"Lease not held by {settings.identity}, nothing to release")
