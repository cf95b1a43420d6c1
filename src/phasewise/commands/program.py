"""Program state commands."""

import click

from ..models.program_state import ProgramIntake, ReassessmentDifficulty
from ..models.training import AgeGroup
from ..services import ProgramScheduler
from .base import (
    async_command,
    echo_info,
    echo_success,
    echo_warning,
    ensure_initialized,
    reports_errors,
    user_option,
)


@click.group()
def program():
    """Start a program and follow its phases.

    Programs run GPP -> SPP -> SSP. Each later phase unlocks only after the
    reassessment at the end of the phase before it.
    """
    pass


@program.command("start")
@user_option
@click.option("--category", "-c", type=int, required=True, help="Sport category ID")
@click.option(
    "--age-group",
    "-a",
    type=click.Choice([g.value for g in AgeGroup]),
    required=True,
    help="Athlete age bracket",
)
@click.option("--years", "-y", type=float, default=0, help="Years of training experience")
@click.option("--days", "-d", type=click.IntRange(1, 7), default=3, help="Training days per week")
@click.option("--weeks-until-season", "-w", type=int, help="Weeks before the season starts")
@click.pass_context
@reports_errors
@async_command
async def start(
    ctx: click.Context,
    user_id: str,
    category: int,
    age_group: str,
    years: float,
    days: int,
    weeks_until_season: int | None,
):
    """Create a program from intake answers."""
    ensure_initialized(ctx)

    state = await ProgramScheduler().start_program(
        ProgramIntake(
            user_id=user_id,
            category_id=category,
            age_group=age_group,
            years_of_experience=years,
            training_days_per_week=days,
            weeks_until_season=weeks_until_season,
        )
    )
    echo_success(f"Program started for {user_id}")
    click.echo(f"  Skill level: {state.skill_level.value}")
    click.echo(f"  Schedule: {state.days_per_week} days/week, {state.weeks_per_phase} weeks/phase")
    click.echo(f"  Position: {state.get_position_display()}")


@program.command("status")
@user_option
@click.pass_context
@reports_errors
@async_command
async def status(ctx: click.Context, user_id: str):
    """Show program position and progress."""
    ensure_initialized(ctx)

    summary = await ProgramScheduler().get_progress_summary(user_id)

    click.echo()
    click.echo(click.style(f"Program: {user_id}", bold=True))
    click.echo("=" * 50)
    click.echo(f"Status: {summary['status'].value}")
    if summary["paused"]:
        echo_warning("Paused. Run 'phasewise program resume' to continue.")
    click.echo(
        f"Position: {summary['phase'].value} Week {summary['week']}, Day {summary['day']}"
    )
    click.echo(f"Skill level: {summary['skill_level'].value}")
    click.echo(f"Age group: {summary['age_group'].value}")
    click.echo(f"Workouts completed: {summary['days_completed']}")
    click.echo(f"Weeks completed: {summary['weeks_completed']}")
    click.echo(f"Unique exercises: {summary['unique_exercises']}")
    click.echo(
        "Unlocked phases: " + ", ".join(p.value for p in summary["unlocked_phases"])
    )
    for phase, count in summary["overrides_by_phase"].items():
        if count:
            click.echo(f"  {phase.value}: {count} swapped slot(s)")

    if summary["reassessment_pending"]:
        click.echo()
        echo_warning("Phase finished. Run 'phasewise program reassess' to continue.")


@program.command("unlocked")
@user_option
@click.pass_context
@reports_errors
@async_command
async def unlocked(ctx: click.Context, user_id: str):
    """List unlocked phases."""
    ensure_initialized(ctx)
    phases = await ProgramScheduler().get_unlocked_phases(user_id)
    for phase in phases:
        click.echo(phase.value)


@program.command("reassess")
@user_option
@click.option(
    "--difficulty",
    type=click.Choice([d.value for d in ReassessmentDifficulty]),
    help="How the finished phase felt. Omit to only show status.",
)
@click.option("--notes", default="", help="Free-form notes")
@click.pass_context
@reports_errors
@async_command
async def reassess(ctx: click.Context, user_id: str, difficulty: str | None, notes: str):
    """Show or complete the end-of-phase reassessment."""
    ensure_initialized(ctx)
    scheduler = ProgramScheduler()

    status = await scheduler.get_reassessment_status(user_id)
    if not status["pending"]:
        echo_info("No reassessment pending.")
        return

    click.echo(
        f"{status['phase'].value} complete: {status['completed_days']}/"
        f"{status['expected_days']} workouts ({status['completion_rate']:.0%})"
    )
    if difficulty is None:
        return

    record = await scheduler.complete_reassessment(
        user_id, ReassessmentDifficulty(difficulty), notes
    )
    if record.skill_upgraded:
        echo_success(
            f"Skill level upgraded: {record.skill_level_before.value} -> "
            f"{record.skill_level_after.value}"
        )
    next_phase = record.phase.next
    if next_phase is None:
        echo_success("Program complete!")
    else:
        echo_success(f"{next_phase.value} unlocked")


@program.command("pause")
@user_option
@click.option("--reason", help="Why training is on hold")
@click.pass_context
@reports_errors
@async_command
async def pause(ctx: click.Context, user_id: str, reason: str | None):
    """Put the program on hold."""
    ensure_initialized(ctx)
    await ProgramScheduler().pause_program(user_id, reason)
    echo_success(f"Program paused for {user_id}")


@program.command("resume")
@user_option
@click.pass_context
@reports_errors
@async_command
async def resume(ctx: click.Context, user_id: str):
    """Resume a paused program. Long breaks restart from GPP Week 1."""
    ensure_initialized(ctx)
    state, was_reset = await ProgramScheduler().resume_program(user_id)
    if was_reset:
        echo_warning("Paused too long, program restarted.")
    echo_success(f"Resumed at {state.get_position_display()}")


@program.command("reset")
@user_option
@click.confirmation_option(prompt="Restart the program from GPP Week 1, Day 1?")
@click.pass_context
@reports_errors
@async_command
async def reset(ctx: click.Context, user_id: str):
    """Restart the program from the beginning. Unlocked phases stay unlocked."""
    ensure_initialized(ctx)
    state = await ProgramScheduler().reset_program(user_id)
    echo_success(f"Program reset to {state.get_position_display()}")


@program.command("delete")
@user_option
@click.confirmation_option(prompt="Delete the program and its workout history?")
@click.pass_context
@reports_errors
@async_command
async def delete(ctx: click.Context, user_id: str):
    """Delete the program, its sessions and reassessments."""
    ensure_initialized(ctx)
    await ProgramScheduler().delete_program(user_id)
    echo_success(f"Program deleted for {user_id}")
