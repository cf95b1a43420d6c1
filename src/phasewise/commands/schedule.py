"""Schedule commands: today's workout, overviews, swaps and focus."""

import click

from ..models.schedule import Slot
from ..models.training import Phase
from ..services import ProgramScheduler
from .base import (
    async_command,
    echo_info,
    echo_success,
    ensure_initialized,
    format_table,
    parse_slot_coordinates,
    reports_errors,
    user_option,
)

phase_argument = click.argument("phase", type=click.Choice([p.value for p in Phase]))


@click.group()
def schedule():
    """View and rearrange the workout schedule.

    Swaps and focus pins are stored per athlete; the template grid itself
    is never changed.
    """
    pass


@schedule.command("today")
@user_option
@click.pass_context
@reports_errors
@async_command
async def today(ctx: click.Context, user_id: str):
    """Show today's workout."""
    ensure_initialized(ctx)

    result = await ProgramScheduler().get_today(user_id)
    click.echo(
        f"{result['phase'].value} Week {result['week']}, Day {result['day']}"
        + (" (focus)" if result["is_focus"] else "")
    )
    if result["trigger_reassessment"]:
        echo_info("Phase finished. Run 'phasewise program reassess' to continue.")
        return
    template = result["template"]
    if template is None:
        echo_info("Rest day.")
        return
    click.echo()
    click.echo(template.get_summary())


@schedule.command("overview")
@phase_argument
@user_option
@click.pass_context
@reports_errors
@async_command
async def overview(ctx: click.Context, phase: str, user_id: str):
    """Show every slot of a phase."""
    ensure_initialized(ctx)

    result = await ProgramScheduler().get_phase_overview(user_id, Phase(phase))
    rows = []
    for view in result.slots:
        flags = []
        if view.is_current:
            flags.append("current")
        if view.overridden:
            flags.append("swapped")
        if view.completed:
            flags.append("done")
        rows.append(
            [
                f"W{view.slot.week}D{view.slot.day}",
                str(view.template_id or "-"),
                view.template_name or "Rest",
                ", ".join(flags),
            ]
        )
    click.echo(click.style(f"{phase} overview", bold=True))
    click.echo(format_table(["Slot", "ID", "Workout", ""], rows))


@schedule.command("swap")
@phase_argument
@click.argument("slot_a")
@click.argument("slot_b")
@user_option
@click.pass_context
@reports_errors
@async_command
async def swap(ctx: click.Context, phase: str, slot_a: str, slot_b: str, user_id: str):
    """Swap the workouts of two slots, given as WEEK-DAY.

    Example: phasewise schedule swap GPP 1-1 1-2
    """
    ensure_initialized(ctx)

    a = Slot(Phase(phase), *parse_slot_coordinates(slot_a))
    b = Slot(Phase(phase), *parse_slot_coordinates(slot_b))
    await ProgramScheduler().swap(user_id, a, b)
    echo_success(f"Swapped {a} and {b}")


@schedule.command("focus")
@click.argument("template_id", type=int)
@click.option("--no-swap", is_flag=True, help="Pin the workout without moving it into this week")
@user_option
@click.pass_context
@reports_errors
@async_command
async def focus(ctx: click.Context, template_id: int, no_swap: bool, user_id: str):
    """Make a template today's workout."""
    ensure_initialized(ctx)
    await ProgramScheduler().set_focus_with_swap(user_id, template_id, auto_swap=not no_swap)
    echo_success(f"Template {template_id} is today's focus")


@schedule.command("clear-focus")
@user_option
@click.pass_context
@reports_errors
@async_command
async def clear_focus(ctx: click.Context, user_id: str):
    """Return to the natural day order."""
    ensure_initialized(ctx)
    await ProgramScheduler().clear_focus(user_id)
    echo_success("Today's focus cleared")


@schedule.command("reset")
@phase_argument
@user_option
@click.pass_context
@reports_errors
@async_command
async def reset(ctx: click.Context, phase: str, user_id: str):
    """Undo every swap in a phase."""
    ensure_initialized(ctx)
    await ProgramScheduler().reset_phase_to_default(user_id, Phase(phase))
    echo_success(f"{phase} schedule reset to default")
