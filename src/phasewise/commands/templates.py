"""Template grid commands."""

import json
from pathlib import Path

import click

from ..db.repositories import TemplateRepository
from ..models.template import WorkoutTemplate
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    ensure_initialized,
    format_table,
    reports_errors,
)


@click.group()
def templates():
    """Manage the canonical workout template grid.

    Templates are authored elsewhere and loaded from JSON. The scheduler
    only ever reads them.
    """
    pass


@templates.command("load")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
@reports_errors
@async_command
async def load(ctx: click.Context, path: Path):
    """Load templates from a JSON file.

    The file holds a list of templates, each with category_id, phase,
    skill_level, week, day, name and exercises. Templates replace any
    existing template at the same grid position.
    """
    ensure_initialized(ctx)

    try:
        payload = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        echo_error(f"Invalid JSON in {path}: {e}")
        ctx.exit(1)

    if isinstance(payload, dict):
        payload = payload.get("templates", [])

    try:
        parsed = [WorkoutTemplate.from_dict(item) for item in payload]
    except (KeyError, ValueError) as e:
        echo_error(f"Invalid template in {path}: {e}")
        ctx.exit(1)

    repo = TemplateRepository()
    for template in parsed:
        await repo.upsert(template)

    echo_success(f"Loaded {len(parsed)} templates from {path.name}")


@templates.command("list")
@click.option("--category", "-c", type=int, help="Only show one sport category")
@click.pass_context
@reports_errors
@async_command
async def list_templates(ctx: click.Context, category: int | None):
    """List loaded templates."""
    ensure_initialized(ctx)

    items = await TemplateRepository().list_all(category_id=category)
    if not items:
        echo_info("No templates loaded. Run 'phasewise templates load <file>' first.")
        return

    rows = [
        [
            str(t.id),
            str(t.category_id),
            t.skill_level.value,
            t.phase.value,
            f"W{t.week}D{t.day}",
            t.name,
            str(len(t.main_exercises)),
        ]
        for t in items
    ]
    click.echo(format_table(["ID", "Cat", "Skill", "Phase", "Slot", "Name", "Main"], rows))
