"""CLI commands for the switchboard leader probe.

Provides command-line interface using Typer:
- switchboard probe: Run one readiness probe cycle
- switchboard status: Show the current lease holder
- switchboard release: Release the lease if held by this replica
- switchboard config: Show the effective configuration

Usage:
    switchboard --help
    switchboard probe
    switchboard status --format json
"""

import typer

from switchboard.cli.config_cmd import app as config_app
from switchboard.cli.probe_cmd import app as probe_app
from switchboard.cli.release_cmd import app as release_app
from switchboard.cli.status_cmd import app as status_app

app = typer.Typer(
    name="switchboard",
    help="Lease-gated leader readiness probe for switchboard replicas",
    no_args_is_help=True,
)

app.add_typer(probe_app, name="probe")
app.add_typer(status_app, name="status")
app.add_typer(release_app, name="release")
app.add_typer(config_app, name="config")


@app.callback()
def callback() -> None:
    """Lease-gated leader readiness probe for switchboard replicas."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
