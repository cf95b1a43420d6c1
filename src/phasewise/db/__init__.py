"""Database layer for phasewise."""

from .engine import connect, get_db_path, init_db, transaction
from .repositories import (
    ProgramStateRepository,
    ReassessmentRepository,
    ScheduleOverrideRepository,
    TemplateRepository,
    UserMaxRepository,
    WorkoutSessionRepository,
)

__all__ = [
    "connect",
    "get_db_path",
    "init_db",
    "ProgramStateRepository",
    "ReassessmentRepository",
    "ScheduleOverrideRepository",
    "TemplateRepository",
    "transaction",
    "UserMaxRepository",
    "WorkoutSessionRepository",
]
