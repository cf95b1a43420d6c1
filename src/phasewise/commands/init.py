"""Initialize project command."""

import click

from ..config import get_settings
from ..db import init_db
from .base import async_command, echo_info, echo_success


@click.command()
@async_command
async def init():
    """Initialize the phasewise data directory and database.

    Creates the SQLite database with the template grid, program state,
    schedule override and session tables. Safe to run more than once.
    """
    settings = get_settings()
    data_dir = settings.data_dir

    echo_info(f"Initializing phasewise in {data_dir}")
    data_dir.mkdir(parents=True, exist_ok=True)

    await init_db(settings.db_path)
    echo_success("Database initialized")

    click.echo()
    click.echo("Next steps:")
    click.echo("  1. Load the template grid:")
    click.echo("     phasewise templates load templates.json")
    click.echo()
    click.echo("  2. Start a program:")
    click.echo("     phasewise program start --category 1 --age-group 14-17 --years 2 --days 3")
