"""Workout session models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .training import Intensity


class SessionStatus(str, Enum):
    """Lifecycle of one workout attempt."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"  # Terminal
    ABANDONED = "abandoned"  # Terminal

    @property
    def is_terminal(self) -> bool:
        return self != SessionStatus.IN_PROGRESS


@dataclass
class SetRecord:
    """Result of a single set."""

    completed: bool = False
    skipped: bool = False
    reps_completed: int | None = None
    weight: float | None = None
    duration_seconds: int | None = None
    rpe: float | None = None

    @property
    def is_done(self) -> bool:
        return self.completed or self.skipped

    def to_dict(self) -> dict:
        return {
            "completed": self.completed,
            "skipped": self.skipped,
            "reps_completed": self.reps_completed,
            "weight": self.weight,
            "duration_seconds": self.duration_seconds,
            "rpe": self.rpe,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SetRecord":
        return cls(
            completed=bool(data.get("completed", False)),
            skipped=bool(data.get("skipped", False)),
            reps_completed=data.get("reps_completed"),
            weight=data.get("weight"),
            duration_seconds=data.get("duration_seconds"),
            rpe=data.get("rpe"),
        )


@dataclass
class ExerciseCompletion:
    """Progress on one main-section exercise of a session."""

    exercise_id: str
    completed: bool = False
    skipped: bool = False
    sets: list[SetRecord] = field(default_factory=list)
    notes: str | None = None

    @property
    def is_done(self) -> bool:
        return self.completed or self.skipped

    def recompute_completed(self) -> bool:
        """An exercise is complete once every set is completed or skipped."""
        self.completed = bool(self.sets) and all(s.is_done for s in self.sets)
        return self.completed

    def to_dict(self) -> dict:
        return {
            "exercise_id": self.exercise_id,
            "completed": self.completed,
            "skipped": self.skipped,
            "sets": [s.to_dict() for s in self.sets],
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExerciseCompletion":
        return cls(
            exercise_id=str(data["exercise_id"]),
            completed=bool(data.get("completed", False)),
            skipped=bool(data.get("skipped", False)),
            sets=[SetRecord.from_dict(s) for s in data.get("sets", [])],
            notes=data.get("notes"),
        )


@dataclass
class WorkoutSession:
    """One attempt at executing a template's main exercises.

    ``exercises`` is index-aligned with the template's main-section
    exercises. ``exercise_order`` maps display position to that index.
    """

    user_id: str
    template_id: int
    user_program_id: int
    status: SessionStatus = SessionStatus.IN_PROGRESS
    exercises: list[ExerciseCompletion] = field(default_factory=list)
    exercise_order: list[int] | None = None
    target_intensity: Intensity | None = None
    prescriptions: list[dict] = field(default_factory=list)  # Scaled, advisory only
    template_snapshot: dict = field(default_factory=dict)  # name, phase, week, day
    started_at: datetime | None = None
    completed_at: datetime | None = None
    total_duration_seconds: int | None = None
    id: int | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def display_order(self) -> list[int]:
        if self.exercise_order is None:
            return list(range(len(self.exercises)))
        return list(self.exercise_order)

    @property
    def completed_exercise_count(self) -> int:
        return sum(1 for ex in self.exercises if ex.completed)

    def to_dict(self) -> dict:
        """Convert to dictionary for storage and API responses."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "template_id": self.template_id,
            "user_program_id": self.user_program_id,
            "status": self.status.value,
            "exercises": [ex.to_dict() for ex in self.exercises],
            "exercise_order": self.exercise_order,
            "target_intensity": self.target_intensity.value if self.target_intensity else None,
            "prescriptions": self.prescriptions,
            "template_snapshot": self.template_snapshot,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "total_duration_seconds": self.total_duration_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "WorkoutSession":
        """Create from dictionary."""
        started_at = None
        if data.get("started_at"):
            started_at = datetime.fromisoformat(data["started_at"])

        completed_at = None
        if data.get("completed_at"):
            completed_at = datetime.fromisoformat(data["completed_at"])

        target_intensity = data.get("target_intensity")

        return cls(
            id=id if id is not None else data.get("id"),
            user_id=data["user_id"],
            template_id=int(data["template_id"]),
            user_program_id=int(data["user_program_id"]),
            status=SessionStatus(data.get("status", "in_progress")),
            exercises=[ExerciseCompletion.from_dict(ex) for ex in data.get("exercises", [])],
            exercise_order=data.get("exercise_order"),
            target_intensity=Intensity(target_intensity) if target_intensity else None,
            prescriptions=data.get("prescriptions") or [],
            template_snapshot=data.get("template_snapshot") or {},
            started_at=started_at,
            completed_at=completed_at,
            total_duration_seconds=data.get("total_duration_seconds"),
        )
