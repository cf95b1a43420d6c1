"""Scheduling and session services."""

from .maxes import MaxUpdate, OneRepMaxService
from .scheduler import ProgramScheduler
from .sessions import CompletionResult, WorkoutSessionService
from .tracker import SessionTracker

__all__ = [
    "CompletionResult",
    "MaxUpdate",
    "OneRepMaxService",
    "ProgramScheduler",
    "SessionTracker",
    "WorkoutSessionService",
]
