"""Pytest configuration and fixtures."""

import asyncio
import tempfile
from pathlib import Path

import pytest

from phasewise.config import Settings
from phasewise.db import TemplateRepository, init_db
from phasewise.models import (
    AgeGroup,
    Phase,
    PrescribedExercise,
    ProgramIntake,
    Section,
    SkillLevel,
    WorkoutTemplate,
)
from phasewise.services import ProgramScheduler, WorkoutSessionService

CATEGORY_ID = 1
WEEKS = 2
DAYS = 3


def make_template(phase: Phase, week: int, day: int, skill_level=SkillLevel.NOVICE):
    """A template with a warmup, three main lifts and a cooldown."""
    return WorkoutTemplate(
        category_id=CATEGORY_ID,
        phase=phase,
        skill_level=skill_level,
        week=week,
        day=day,
        name=f"{phase.value} W{week}D{day}",
        exercises=[
            PrescribedExercise("jog", 1, "5 min", 0, 0, section=Section.WARMUP),
            PrescribedExercise("goblet_squat", 3, "8-10", 90, 1, target_weight=40),
            PrescribedExercise("push_up", 3, "12", 60, 2),
            PrescribedExercise("plank", 2, "30s", 45, 3),
            PrescribedExercise("stretch", 1, "2 min", 0, 4, section=Section.COOLDOWN),
        ],
    )


async def seed_grid(db_path: Path) -> dict[tuple[Phase, int, int], int]:
    """Create the schema and a full Novice grid; returns template IDs by slot."""
    await init_db(db_path)
    repo = TemplateRepository(db_path)
    ids = {}
    for phase in Phase:
        for week in range(1, WEEKS + 1):
            for day in range(1, DAYS + 1):
                ids[(phase, week, day)] = await repo.upsert(make_template(phase, week, day))
    return ids


@pytest.fixture
def temp_db_path():
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def settings(temp_db_path):
    """Settings pointing at the temporary database, with a fast auto-save."""
    return Settings(
        data_dir=temp_db_path.parent,
        db_filename=temp_db_path.name,
        autosave_debounce_seconds=0.05,
    )


@pytest.fixture
async def grid(temp_db_path):
    return await seed_grid(temp_db_path)


@pytest.fixture
def sync_grid(temp_db_path):
    """Same as ``grid`` for synchronous tests."""
    return asyncio.run(seed_grid(temp_db_path))


@pytest.fixture
def intake():
    return ProgramIntake(
        user_id="athlete-1",
        category_id=CATEGORY_ID,
        age_group=AgeGroup.TEEN,
        years_of_experience=0.5,
        training_days_per_week=DAYS,
        weeks_until_season=WEEKS * 3,
    )


@pytest.fixture
def scheduler(temp_db_path, settings):
    return ProgramScheduler(temp_db_path, settings)


@pytest.fixture
def service(temp_db_path, settings, scheduler):
    return WorkoutSessionService(temp_db_path, settings, scheduler=scheduler)


@pytest.fixture
async def program(grid, scheduler, intake):
    """A started program on a seeded grid."""
    return await scheduler.start_program(intake)
