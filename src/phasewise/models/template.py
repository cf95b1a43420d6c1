"""Workout template models.

Templates form the canonical grid keyed by
``(category_id, phase, skill_level, week, day)``. They are seeded externally
and treated as read-only by the scheduler and session services.
"""

from dataclasses import dataclass, field

from .training import Intensity, Phase, Section, SkillLevel


@dataclass
class PrescribedExercise:
    """One exercise prescription inside a workout template."""

    exercise_id: str
    sets: int
    reps: str  # "10-12", "5", "AMRAP", "30s", "2 min"
    rest_seconds: int
    order_index: int
    section: Section = Section.MAIN
    tempo: str | None = None  # "3010", "X010" (X = explosive)
    notes: str = ""
    superset: str | None = None  # Group ID for supersets: "A", "B"
    intensity: Intensity = Intensity.MODERATE
    target_weight: float | None = None  # Base load or known 1RM

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "exercise_id": self.exercise_id,
            "sets": self.sets,
            "reps": self.reps,
            "rest_seconds": self.rest_seconds,
            "order_index": self.order_index,
            "section": self.section.value,
            "tempo": self.tempo,
            "notes": self.notes,
            "superset": self.superset,
            "intensity": self.intensity.value,
            "target_weight": self.target_weight,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PrescribedExercise":
        """Create from a stored dictionary, resolving legacy entries."""
        if "section" not in data or data["section"] is None:
            return LegacyExercise(data).resolve()
        return SectionedExercise(data).resolve()


_WARMUP_MARKERS = ("warmup", "warm-up", "warm up")
_COOLDOWN_MARKERS = ("cooldown", "cool-down", "cool down")


@dataclass
class SectionedExercise:
    """Stored prescription carrying an explicit section tag."""

    data: dict

    def resolve(self) -> PrescribedExercise:
        return _build_exercise(self.data, Section(self.data["section"]))


@dataclass
class LegacyExercise:
    """Stored prescription from before sections were tagged.

    Older rows flagged warmup and cooldown work only through their notes, so
    the section is inferred from those notes and defaults to main work.
    """

    data: dict

    def infer_section(self) -> Section:
        notes = (self.data.get("notes") or "").lower()
        if any(marker in notes for marker in _WARMUP_MARKERS):
            return Section.WARMUP
        if any(marker in notes for marker in _COOLDOWN_MARKERS):
            return Section.COOLDOWN
        return Section.MAIN

    def resolve(self) -> PrescribedExercise:
        return _build_exercise(self.data, self.infer_section())


def _build_exercise(data: dict, section: Section) -> PrescribedExercise:
    return PrescribedExercise(
        exercise_id=str(data["exercise_id"]),
        sets=int(data["sets"]),
        reps=str(data["reps"]),
        rest_seconds=int(data.get("rest_seconds", 60)),
        order_index=int(data.get("order_index", 0)),
        section=section,
        tempo=data.get("tempo"),
        notes=data.get("notes") or "",
        superset=data.get("superset"),
        intensity=Intensity(data.get("intensity") or Intensity.MODERATE.value),
        target_weight=data.get("target_weight"),
    )


@dataclass
class WorkoutTemplate:
    """A canonical workout for one slot of the grid."""

    category_id: int
    phase: Phase
    skill_level: SkillLevel
    week: int
    day: int
    name: str
    exercises: list[PrescribedExercise] = field(default_factory=list)
    description: str = ""
    estimated_duration_minutes: int = 45
    id: int | None = None

    @property
    def ordered_exercises(self) -> list[PrescribedExercise]:
        """All prescriptions sorted by their order index."""
        return sorted(self.exercises, key=lambda ex: ex.order_index)

    @property
    def main_exercises(self) -> list[PrescribedExercise]:
        """Main-section prescriptions; the only ones tracked by sessions."""
        return [ex for ex in self.ordered_exercises if ex.section == Section.MAIN]

    @property
    def warmup_exercises(self) -> list[PrescribedExercise]:
        return [ex for ex in self.ordered_exercises if ex.section == Section.WARMUP]

    @property
    def cooldown_exercises(self) -> list[PrescribedExercise]:
        return [ex for ex in self.ordered_exercises if ex.section == Section.COOLDOWN]

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "category_id": self.category_id,
            "phase": self.phase.value,
            "skill_level": self.skill_level.value,
            "week": self.week,
            "day": self.day,
            "name": self.name,
            "description": self.description,
            "estimated_duration_minutes": self.estimated_duration_minutes,
            "exercises": [ex.to_dict() for ex in self.exercises],
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "WorkoutTemplate":
        """Create from dictionary."""
        return cls(
            id=id if id is not None else data.get("id"),
            category_id=int(data["category_id"]),
            phase=Phase(data["phase"]),
            skill_level=SkillLevel(data["skill_level"]),
            week=int(data["week"]),
            day=int(data["day"]),
            name=data["name"],
            description=data.get("description", ""),
            estimated_duration_minutes=data.get("estimated_duration_minutes", 45),
            exercises=[PrescribedExercise.from_dict(ex) for ex in data.get("exercises", [])],
        )

    def get_summary(self) -> str:
        """Generate a short text summary of the workout."""
        summary = f"{self.name} ({self.phase.value} week {self.week}, day {self.day})\n"
        for label, group in (
            ("Warmup", self.warmup_exercises),
            ("Main", self.main_exercises),
            ("Cooldown", self.cooldown_exercises),
        ):
            if not group:
                continue
            summary += f"  {label}:\n"
            for ex in group:
                summary += f"    - {ex.exercise_id}: {ex.sets}x{ex.reps}\n"
        return summary
