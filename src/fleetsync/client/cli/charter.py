"""Charter commands for the fleetsync CLI.

Commands:
- charter add: Create a local charter
- charter list: List local charters
- charter pull: Fetch the user's charters from the server
"""

from __future__ import annotations

import sys
from datetime import datetime

import click

from fleetsync.client.cli.context import open_context
from fleetsync.client.repository import Charter
from fleetsync.core.types import CharterVisibility


@click.group()
def charter() -> None:
    """Charter commands.

    Charters that are not private are pushed on every sync.
    """


@charter.command("add")
@click.option("--name", required=True, help="Charter name.")
@click.option("--start", "start", type=click.DateTime(["%Y-%m-%d"]), required=True, help="First day.")
@click.option("--end", "end", type=click.DateTime(["%Y-%m-%d"]), required=True, help="Last day.")
@click.option("--boat", default=None, help="Vessel name.")
@click.option("--location", default=None, help="Free-text location.")
@click.option(
    "--visibility",
    type=click.Choice([v.value for v in CharterVisibility]),
    default=CharterVisibility.PRIVATE.value,
    show_default=True,
    help="Who can discover the charter.",
)
def add_charter(
    name: str,
    start: datetime,
    end: datetime,
    boat: str | None,
    location: str | None,
    visibility: str,
) -> None:
    """Create a local charter."""
    if end < start:
        click.echo("Error: --end must not be before --start", err=True)
        sys.exit(1)

    new_charter = Charter(
        name=name,
        start_date=start.date(),
        end_date=end.date(),
        boat_name=boat,
        location=location,
        visibility=CharterVisibility(visibility),
    )
    with open_context() as ctx:
        ctx.charter_repository.save_charter(new_charter)
    click.echo(new_charter.id)


@charter.command("list")
def list_charters() -> None:
    """List local charters."""
    with open_context() as ctx:
        for c in ctx.charter_repository.list_charters():
            state = "pending" if c.needs_sync else "synced"
            click.echo(
                f"{c.id}  {c.start_date} - {c.end_date}  "
                f"{c.visibility.value:<9} {state:<7} {c.name}"
            )


@charter.command("pull")
def pull_charters() -> None:
    """Fetch the user's charters from the server."""
    with open_context() as ctx:
        merged = ctx.charters.pull_my_charters()
    click.echo(f"Merged {merged} charter(s)")
