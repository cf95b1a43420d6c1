"""Per-athlete program position and phase unlock state."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .training import AgeGroup, Phase, SkillLevel


class ProgramStatus(str, Enum):
    """Program execution status."""

    ACTIVE = "active"
    COMPLETED = "completed"


class ReassessmentDifficulty(str, Enum):
    """How the athlete rated the phase they just finished."""

    TOO_EASY = "too_easy"
    JUST_RIGHT = "just_right"
    TOO_HARD = "too_hard"


@dataclass
class AdvanceResult:
    """Outcome of moving a program to its next slot."""

    phase: Phase
    week: int
    day: int
    trigger_reassessment: bool = False
    completed_phase: Phase | None = None
    next_phase: Phase | None = None

    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "week": self.week,
            "day": self.day,
            "trigger_reassessment": self.trigger_reassessment,
            "completed_phase": self.completed_phase.value if self.completed_phase else None,
            "next_phase": self.next_phase.value if self.next_phase else None,
        }


@dataclass
class ProgramIntake:
    """Answers collected by the onboarding flow."""

    user_id: str
    category_id: int
    age_group: AgeGroup | str
    years_of_experience: float
    training_days_per_week: int
    weeks_until_season: int | None = None


@dataclass
class ReassessmentRecord:
    """A completed end-of-phase reassessment."""

    user_id: str
    phase: Phase
    difficulty: ReassessmentDifficulty
    completion_rate: float
    skill_level_before: SkillLevel
    skill_level_after: SkillLevel
    notes: str = ""
    completed_at: datetime | None = None
    id: int | None = None

    @property
    def skill_upgraded(self) -> bool:
        return self.skill_level_after != self.skill_level_before

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "phase": self.phase.value,
            "difficulty": self.difficulty.value,
            "completion_rate": self.completion_rate,
            "skill_level_before": self.skill_level_before.value,
            "skill_level_after": self.skill_level_after.value,
            "skill_upgraded": self.skill_upgraded,
            "notes": self.notes,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "ReassessmentRecord":
        return cls(
            id=id,
            user_id=data["user_id"],
            phase=Phase(data["phase"]),
            difficulty=ReassessmentDifficulty(data["difficulty"]),
            completion_rate=float(data["completion_rate"]),
            skill_level_before=SkillLevel(data["skill_level_before"]),
            skill_level_after=SkillLevel(data["skill_level_after"]),
            notes=data.get("notes") or "",
            completed_at=_parse_dt(data.get("completed_at")),
        )


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _format_dt(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class ProgramState:
    """Tracks an athlete's position in the phase/week/day grid.

    Phase progression only moves forward (GPP -> SPP -> SSP) and the unlock
    timestamps, once set, are never cleared. ``week`` and ``day`` are 1-based
    and always lie within ``weeks_per_phase`` and ``days_per_week``.
    """

    user_id: str
    category_id: int
    skill_level: SkillLevel
    age_group: AgeGroup
    days_per_week: int
    weeks_per_phase: int
    phase: Phase = Phase.GPP
    week: int = 1
    day: int = 1
    spp_unlocked_at: datetime | None = None
    ssp_unlocked_at: datetime | None = None
    reassessment_pending_for_phase: Phase | None = None
    # Phase value -> when its reassessment was completed
    reassessments: dict[str, datetime] = field(default_factory=dict)
    status: ProgramStatus = ProgramStatus.ACTIVE
    last_workout_at: datetime | None = None
    paused_at: datetime | None = None
    pause_reason: str | None = None
    created_at: datetime | None = None
    id: int | None = None

    @property
    def total_days_per_phase(self) -> int:
        return self.days_per_week * self.weeks_per_phase

    @property
    def is_paused(self) -> bool:
        return self.paused_at is not None

    @property
    def unlocked_phases(self) -> list[Phase]:
        phases = [Phase.GPP]
        if self.spp_unlocked_at is not None:
            phases.append(Phase.SPP)
        if self.ssp_unlocked_at is not None:
            phases.append(Phase.SSP)
        return phases

    def is_unlocked(self, phase: Phase) -> bool:
        return phase in self.unlocked_phases

    def is_current_slot(self, phase: Phase, week: int, day: int) -> bool:
        return (self.phase, self.week, self.day) == (phase, week, day)

    def advance(self) -> AdvanceResult:
        """Advance to the next day of the current phase.

        When the last day of the phase has been completed the position stays
        on that slot and a reassessment is flagged. The next phase is never
        unlocked here. A completed program stays where it is.
        """
        if self.status == ProgramStatus.COMPLETED:
            return AdvanceResult(phase=self.phase, week=self.week, day=self.day)

        self.last_workout_at = datetime.now()

        if self.reassessment_pending_for_phase is not None:
            return self._reassessment_result()

        if self.day < self.days_per_week:
            self.day += 1
        elif self.week < self.weeks_per_phase:
            self.week += 1
            self.day = 1
        else:
            self.reassessment_pending_for_phase = self.phase
            return self._reassessment_result()

        return AdvanceResult(phase=self.phase, week=self.week, day=self.day)

    def _reassessment_result(self) -> AdvanceResult:
        completed = self.reassessment_pending_for_phase
        return AdvanceResult(
            phase=self.phase,
            week=self.week,
            day=self.day,
            trigger_reassessment=True,
            completed_phase=completed,
            next_phase=completed.next if completed else None,
        )

    def unlock(self, phase: Phase, at: datetime | None = None) -> None:
        """Unlock ``phase`` and move the position to its first slot."""
        at = at or datetime.now()
        if phase == Phase.SPP and self.spp_unlocked_at is None:
            self.spp_unlocked_at = at
        elif phase == Phase.SSP and self.ssp_unlocked_at is None:
            self.ssp_unlocked_at = at
        if phase.index > self.phase.index:
            self.phase = phase
            self.week = 1
            self.day = 1

    def restart(self) -> None:
        """Go back to GPP Week 1, Day 1 and clear pause and pending state.

        Unlock timestamps and past reassessments are kept.
        """
        self.phase = Phase.GPP
        self.week = 1
        self.day = 1
        self.reassessment_pending_for_phase = None
        self.status = ProgramStatus.ACTIVE
        self.last_workout_at = None
        self.paused_at = None
        self.pause_reason = None

    def get_position_display(self) -> str:
        return f"{self.phase.value} Week {self.week}, Day {self.day}"

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "user_id": self.user_id,
            "category_id": self.category_id,
            "skill_level": self.skill_level.value,
            "age_group": self.age_group.value,
            "days_per_week": self.days_per_week,
            "weeks_per_phase": self.weeks_per_phase,
            "phase": self.phase.value,
            "week": self.week,
            "day": self.day,
            "spp_unlocked_at": _format_dt(self.spp_unlocked_at),
            "ssp_unlocked_at": _format_dt(self.ssp_unlocked_at),
            "reassessment_pending_for_phase": (
                self.reassessment_pending_for_phase.value
                if self.reassessment_pending_for_phase
                else None
            ),
            "reassessments": {k: v.isoformat() for k, v in self.reassessments.items()},
            "status": self.status.value,
            "last_workout_at": _format_dt(self.last_workout_at),
            "paused_at": _format_dt(self.paused_at),
            "pause_reason": self.pause_reason,
            "created_at": _format_dt(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "ProgramState":
        """Create from dictionary."""
        pending = data.get("reassessment_pending_for_phase")
        return cls(
            id=id,
            user_id=data["user_id"],
            category_id=int(data["category_id"]),
            skill_level=SkillLevel(data["skill_level"]),
            age_group=AgeGroup.normalize(data["age_group"]),
            days_per_week=int(data["days_per_week"]),
            weeks_per_phase=int(data["weeks_per_phase"]),
            phase=Phase(data.get("phase", "GPP")),
            week=data.get("week", 1),
            day=data.get("day", 1),
            spp_unlocked_at=_parse_dt(data.get("spp_unlocked_at")),
            ssp_unlocked_at=_parse_dt(data.get("ssp_unlocked_at")),
            reassessment_pending_for_phase=Phase(pending) if pending else None,
            reassessments={
                k: datetime.fromisoformat(v)
                for k, v in (data.get("reassessments") or {}).items()
            },
            status=ProgramStatus(data.get("status", "active")),
            last_workout_at=_parse_dt(data.get("last_workout_at")),
            paused_at=_parse_dt(data.get("paused_at")),
            pause_reason=data.get("pause_reason"),
            created_at=_parse_dt(data.get("created_at")),
        )
