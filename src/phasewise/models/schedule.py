"""Schedule override and phase overview models."""

from dataclasses import dataclass, field
from datetime import datetime

from .training import Phase


@dataclass(frozen=True)
class Slot:
    """A ``(phase, week, day)`` coordinate in the program grid."""

    phase: Phase
    week: int
    day: int

    @property
    def key(self) -> str:
        return f"{self.week}-{self.day}"

    def __str__(self) -> str:
        return f"{self.phase.value} W{self.week}D{self.day}"

    def to_dict(self) -> dict:
        return {"phase": self.phase.value, "week": self.week, "day": self.day}

    @classmethod
    def from_dict(cls, data: dict) -> "Slot":
        return cls(phase=Phase(data["phase"]), week=int(data["week"]), day=int(data["day"]))


def _parse_key(key: str) -> tuple[int, int]:
    week, day = key.split("-")
    return int(week), int(day)


@dataclass
class ScheduleOverride:
    """Athlete-specific deviations from the canonical template grid.

    ``slot_swaps`` maps a phase to ``{(week, day): template_id}``. A missing
    entry means the canonical template applies.
    """

    user_id: str
    slot_swaps: dict[Phase, dict[tuple[int, int], int]] = field(default_factory=dict)
    today_focus_template_id: int | None = None
    today_focus_set_at: datetime | None = None
    id: int | None = None

    def lookup(self, slot: Slot) -> tuple[bool, int | None]:
        """Return ``(overridden, template_id)`` for a slot."""
        phase_swaps = self.slot_swaps.get(slot.phase, {})
        if (slot.week, slot.day) in phase_swaps:
            return True, phase_swaps[(slot.week, slot.day)]
        return False, None

    def assign(self, slot: Slot, template_id: int) -> None:
        self.slot_swaps.setdefault(slot.phase, {})[(slot.week, slot.day)] = template_id

    def drop(self, slot: Slot) -> None:
        phase_swaps = self.slot_swaps.get(slot.phase)
        if phase_swaps is None:
            return
        phase_swaps.pop((slot.week, slot.day), None)
        if not phase_swaps:
            del self.slot_swaps[slot.phase]

    def reset_phase(self, phase: Phase) -> None:
        self.slot_swaps.pop(phase, None)

    def set_focus(self, template_id: int) -> None:
        self.today_focus_template_id = template_id
        self.today_focus_set_at = datetime.now()

    def clear_focus(self) -> None:
        self.today_focus_template_id = None
        self.today_focus_set_at = None

    def override_count(self, phase: Phase) -> int:
        return len(self.slot_swaps.get(phase, {}))

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "user_id": self.user_id,
            "slot_swaps": {
                phase.value: {f"{w}-{d}": tid for (w, d), tid in swaps.items()}
                for phase, swaps in self.slot_swaps.items()
            },
            "today_focus_template_id": self.today_focus_template_id,
            "today_focus_set_at": (
                self.today_focus_set_at.isoformat() if self.today_focus_set_at else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "ScheduleOverride":
        """Create from dictionary."""
        focus_set_at = None
        if data.get("today_focus_set_at"):
            focus_set_at = datetime.fromisoformat(data["today_focus_set_at"])

        return cls(
            id=id,
            user_id=data["user_id"],
            slot_swaps={
                Phase(phase): {_parse_key(key): tid for key, tid in swaps.items()}
                for phase, swaps in (data.get("slot_swaps") or {}).items()
            },
            today_focus_template_id=data.get("today_focus_template_id"),
            today_focus_set_at=focus_set_at,
        )


@dataclass
class SlotView:
    """One resolved slot in a phase overview."""

    slot: Slot
    template_id: int | None
    template_name: str | None = None
    overridden: bool = False
    completed: bool = False
    is_current: bool = False

    @property
    def is_rest_day(self) -> bool:
        return self.template_id is None

    def to_dict(self) -> dict:
        return {
            **self.slot.to_dict(),
            "template_id": self.template_id,
            "template_name": self.template_name,
            "overridden": self.overridden,
            "completed": self.completed,
            "is_current": self.is_current,
            "is_rest_day": self.is_rest_day,
        }


@dataclass
class PhaseOverview:
    """Resolved slots of one phase grouped by week."""

    phase: Phase
    weeks: list[list[SlotView]] = field(default_factory=list)

    @property
    def slots(self) -> list[SlotView]:
        return [view for week in self.weeks for view in week]

    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "weeks": [
                {"week": i + 1, "days": [view.to_dict() for view in week]}
                for i, week in enumerate(self.weeks)
            ],
        }
