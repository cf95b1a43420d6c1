"""Shared CLI utilities."""

import asyncio
from functools import wraps

import click

from ..config import get_settings
from ..errors import PhasewiseError, StateConflict

user_option = click.option(
    "--user",
    "-u",
    "user_id",
    default="local",
    envvar="PHASEWISE_USER",
    show_default=True,
    help="Athlete the command acts on.",
)


def async_command(f):
    """Decorator to run async Click commands."""

    @wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))

    return wrapper


def reports_errors(f):
    """Decorator that turns phasewise errors into a message and exit code 1.

    Place it between ``@click.pass_context`` and ``@async_command``.
    """

    @wraps(f)
    def wrapper(ctx: click.Context, *args, **kwargs):
        try:
            return f(ctx, *args, **kwargs)
        except StateConflict as e:
            echo_error(f"{e.user_message.capitalize()}: {e}")
            ctx.exit(1)
        except PhasewiseError as e:
            echo_error(str(e))
            ctx.exit(1)

    return wrapper


def ensure_initialized(ctx: click.Context) -> None:
    """Ensure the database is initialized."""
    db_path = get_settings().db_path
    if not db_path.exists():
        click.echo(
            click.style("Error: ", fg="red")
            + "Project not initialized. Run 'phasewise init' first."
        )
        ctx.exit(1)


def echo_success(message: str) -> None:
    """Print a success message."""
    click.echo(click.style("[OK] ", fg="green") + message)


def echo_error(message: str) -> None:
    """Print an error message."""
    click.echo(click.style("[ERROR] ", fg="red") + message)


def echo_info(message: str) -> None:
    """Print an info message."""
    click.echo(click.style("[INFO] ", fg="blue") + message)


def echo_warning(message: str) -> None:
    """Print a warning message."""
    click.echo(click.style("[WARN] ", fg="yellow") + message)


def parse_slot_coordinates(value: str) -> tuple[int, int]:
    """Parse ``"W-D"`` (e.g. ``"1-3"``) into ``(week, day)``."""
    try:
        week, day = (int(part) for part in value.split("-", 1))
    except ValueError as e:
        raise click.BadParameter(f"Expected WEEK-DAY, got {value!r}") from e
    return week, day


def format_table(headers: list[str], rows: list[list[str]], padding: int = 2) -> str:
    """Format data as a simple table."""
    if not rows:
        return ""

    # Calculate column widths
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(str(cell)))

    lines = [
        "".join(h.ljust(widths[i] + padding) for i, h in enumerate(headers)),
        "".join("-" * w + " " * padding for w in widths),
    ]
    for row in rows:
        lines.append("".join(str(cell).ljust(widths[i] + padding) for i, cell in enumerate(row)))

    return "\n".join(lines)
