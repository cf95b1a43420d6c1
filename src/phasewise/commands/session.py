"""Workout session commands."""

import click

from ..errors import NotFound
from ..models.session import SetRecord
from ..services import ProgramScheduler, SessionTracker, WorkoutSessionService
from .base import (
    async_command,
    echo_info,
    echo_success,
    echo_warning,
    ensure_initialized,
    format_table,
    reports_errors,
    user_option,
)


@click.group()
def session():
    """Run a workout: start it, log sets, then complete or abandon it."""
    pass


async def _tracker_for(user_id: str) -> SessionTracker:
    tracker = await SessionTracker.resume(WorkoutSessionService(), user_id)
    if tracker is None:
        raise NotFound("No workout in progress. Run 'phasewise session start' first.")
    return tracker


def _show(tracker: SessionTracker) -> None:
    session = tracker.session
    snapshot = session.template_snapshot
    click.echo(
        click.style(f"Session {session.id}: {snapshot.get('name', session.template_id)}", bold=True)
    )
    active = tracker.active_index
    rows = []
    for position in range(len(tracker.order)):
        exercise = tracker.exercise_at(position)
        prescription = tracker.prescription_at(position)
        done = sum(1 for s in exercise.sets if s.is_done)
        if exercise.skipped:
            state = "skipped"
        elif exercise.completed:
            state = "done"
        elif position == active:
            state = "<- now"
        else:
            state = ""
        rows.append(
            [
                str(position),
                exercise.exercise_id,
                f"{prescription.get('sets', len(exercise.sets))} x {prescription.get('reps', '?')}",
                f"{done}/{len(exercise.sets)}",
                state,
            ]
        )
    click.echo(format_table(["#", "Exercise", "Target", "Sets", ""], rows))


@session.command("start")
@click.argument("template_id", type=int, required=False)
@user_option
@click.pass_context
@reports_errors
@async_command
async def start(ctx: click.Context, template_id: int | None, user_id: str):
    """Start a workout. Defaults to today's workout."""
    ensure_initialized(ctx)

    if template_id is None:
        template_id = await ProgramScheduler().resolve_today(user_id)
        if template_id is None:
            echo_info("Today is a rest day.")
            return

    tracker = await SessionTracker.start(WorkoutSessionService(), user_id, template_id)
    echo_success(f"Started session {tracker.session.id}")
    _show(tracker)


@session.command("current")
@user_option
@click.pass_context
@reports_errors
@async_command
async def current(ctx: click.Context, user_id: str):
    """Show the workout in progress."""
    ensure_initialized(ctx)
    _show(await _tracker_for(user_id))


@session.command("log")
@click.argument("position", type=int)
@click.argument("set_index", metavar="SET", type=int)
@click.option("--reps", type=int, help="Reps completed")
@click.option("--weight", type=float, help="Load used")
@click.option("--seconds", type=int, help="Duration for timed sets")
@click.option("--rpe", type=float, help="Rate of perceived exertion")
@click.option("--skip", is_flag=True, help="Mark the set as skipped")
@user_option
@click.pass_context
@reports_errors
@async_command
async def log(
    ctx: click.Context,
    position: int,
    set_index: int,
    reps: int | None,
    weight: float | None,
    seconds: int | None,
    rpe: float | None,
    skip: bool,
    user_id: str,
):
    """Record set SET (0-based) of the exercise at POSITION."""
    ensure_initialized(ctx)

    tracker = await _tracker_for(user_id)
    exercise = tracker.update_set(
        position,
        set_index,
        SetRecord(
            completed=not skip,
            skipped=skip,
            reps_completed=reps,
            weight=weight,
            duration_seconds=seconds,
            rpe=rpe,
        ),
    )
    await tracker.flush()

    echo_success(f"Logged set {set_index} of {exercise.exercise_id}")
    if exercise.completed:
        echo_info(f"{exercise.exercise_id} complete")
    if tracker.is_finished:
        echo_info("All exercises done. Run 'phasewise session complete'.")


@session.command("skip")
@click.argument("position", type=int)
@user_option
@click.pass_context
@reports_errors
@async_command
async def skip(ctx: click.Context, position: int, user_id: str):
    """Skip the exercise at POSITION."""
    ensure_initialized(ctx)
    tracker = await _tracker_for(user_id)
    exercise = tracker.skip_exercise(position)
    await tracker.flush()
    echo_success(f"Skipped {exercise.exercise_id}")


@session.command("move")
@click.argument("from_position", type=int)
@click.argument("to_position", type=int)
@user_option
@click.pass_context
@reports_errors
@async_command
async def move(ctx: click.Context, from_position: int, to_position: int, user_id: str):
    """Move an upcoming exercise to another upcoming position."""
    ensure_initialized(ctx)
    tracker = await _tracker_for(user_id)
    tracker.reorder_upcoming(from_position, to_position)
    await tracker.flush()
    _show(tracker)


@session.command("complete")
@click.option("--mark-all", is_flag=True, help="Mark every unfinished set as completed first")
@user_option
@click.pass_context
@reports_errors
@async_command
async def complete(ctx: click.Context, mark_all: bool, user_id: str):
    """Finish the workout and advance the program."""
    ensure_initialized(ctx)

    tracker = await _tracker_for(user_id)
    if mark_all:
        for exercise in tracker.session.exercises:
            if exercise.skipped:
                continue
            for record in exercise.sets:
                if not record.is_done:
                    record.completed = True
            exercise.recompute_completed()

    result = await tracker.complete()
    session = result.session
    echo_success(
        f"Session {session.id} complete "
        f"({session.completed_exercise_count}/{len(session.exercises)} exercises)"
    )
    advance = result.advance
    if advance.trigger_reassessment:
        echo_warning(
            f"{advance.completed_phase.value} finished. "
            "Run 'phasewise program reassess' to continue."
        )
    else:
        click.echo(f"Next: {advance.phase.value} Week {advance.week}, Day {advance.day}")


@session.command("abandon")
@user_option
@click.pass_context
@reports_errors
@async_command
async def abandon(ctx: click.Context, user_id: str):
    """Stop the workout without advancing the program."""
    ensure_initialized(ctx)
    tracker = await _tracker_for(user_id)
    session = await tracker.abandon()
    echo_success(f"Session {session.id} abandoned")
