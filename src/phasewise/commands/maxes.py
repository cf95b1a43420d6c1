"""One-rep max commands."""

import click

from ..models.one_rep_max import MaxSource
from ..services import OneRepMaxService
from .base import (
    async_command,
    echo_info,
    echo_success,
    ensure_initialized,
    reports_errors,
    user_option,
)


@click.group()
def maxes():
    """Record one-rep maxes.

    Weighted exercises with a recorded max get their target load from it
    instead of the template's base weight.
    """
    pass


@maxes.command("set")
@user_option
@click.argument("exercise_id")
@click.argument("value", type=float)
@click.option(
    "--source",
    type=click.Choice([s.value for s in MaxSource]),
    default=MaxSource.USER_INPUT.value,
    help="Where the number came from",
)
@click.option("--notes", default="", help="Free-form notes")
@click.pass_context
@reports_errors
@async_command
async def set_max(
    ctx: click.Context, user_id: str, exercise_id: str, value: float, source: str, notes: str
):
    """Record a max for EXERCISE_ID."""
    ensure_initialized(ctx)
    record = await OneRepMaxService().set_max(
        user_id, exercise_id, value, MaxSource(source), notes
    )
    echo_success(f"{exercise_id}: {record.one_rep_max:g}")


@maxes.command("from-set")
@user_option
@click.argument("exercise_id")
@click.option("--weight", "-w", type=float, required=True, help="Weight lifted")
@click.option("--reps", "-r", type=int, required=True, help="Reps completed")
@click.option("--notes", default="", help="Free-form notes")
@click.pass_context
@reports_errors
@async_command
async def from_set(
    ctx: click.Context, user_id: str, exercise_id: str, weight: float, reps: int, notes: str
):
    """Estimate a max from one set; keeps the higher of old and new."""
    ensure_initialized(ctx)
    update = await OneRepMaxService().calculate_and_save_max(
        user_id, exercise_id, weight, reps, notes
    )
    if update.action == "unchanged":
        echo_info(
            f"Estimate {update.one_rep_max:g} does not beat {update.previous_max:g}; kept"
        )
    else:
        echo_success(f"{exercise_id}: {update.one_rep_max:g} ({update.action})")


@maxes.command("list")
@user_option
@click.pass_context
@reports_errors
@async_command
async def list_maxes(ctx: click.Context, user_id: str):
    """List recorded maxes."""
    ensure_initialized(ctx)
    records = await OneRepMaxService().list_maxes(user_id)
    if not records:
        echo_info("No maxes recorded.")
        return
    for record in records:
        click.echo(f"{record.exercise_id:<24} {record.one_rep_max:>8g}  {record.source.value}")


@maxes.command("delete")
@user_option
@click.argument("exercise_id")
@click.pass_context
@reports_errors
@async_command
async def delete_max(ctx: click.Context, user_id: str, exercise_id: str):
    """Forget the max for EXERCISE_ID."""
    ensure_initialized(ctx)
    await OneRepMaxService().delete_max(user_id, exercise_id)
    echo_success(f"Deleted {exercise_id} max")
