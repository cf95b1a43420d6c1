"""Per-athlete one-rep max records."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class MaxSource(str, Enum):
    """Where a one-rep max came from."""

    USER_INPUT = "user_input"  # Athlete entered it
    CALCULATED = "calculated"  # Estimated from a logged set
    ASSESSMENT = "assessment"  # Dedicated test day


@dataclass
class OneRepMax:
    """An athlete's current max for one exercise."""

    user_id: str
    exercise_id: str
    one_rep_max: float
    source: MaxSource = MaxSource.USER_INPUT
    notes: str = ""
    recorded_at: datetime | None = None
    id: int | None = None

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "exercise_id": self.exercise_id,
            "one_rep_max": self.one_rep_max,
            "source": self.source.value,
            "notes": self.notes,
            "recorded_at": self.recorded_at.isoformat() if self.recorded_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "OneRepMax":
        recorded_at = data.get("recorded_at")
        return cls(
            id=id,
            user_id=data["user_id"],
            exercise_id=data["exercise_id"],
            one_rep_max=float(data["one_rep_max"]),
            source=MaxSource(data.get("source", "user_input")),
            notes=data.get("notes") or "",
            recorded_at=datetime.fromisoformat(recorded_at) if recorded_at else None,
        )
