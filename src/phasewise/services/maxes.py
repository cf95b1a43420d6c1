"""Athlete one-rep maxes used to turn load percentages into weights."""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from loguru import logger

from ..db.engine import get_db_path, transaction
from ..db.repositories import UserMaxRepository
from ..errors import NotFound, ValidationError
from ..models.one_rep_max import MaxSource, OneRepMax
from ..scaling import calculate_one_rep_max

# Anything above this is treated as a typo
MAX_PLAUSIBLE_ONE_REP_MAX = 2000


@dataclass
class MaxUpdate:
    """Result of estimating a max from a logged set."""

    action: str  # "created", "updated" or "unchanged"
    one_rep_max: float
    record: OneRepMax
    previous_max: float | None = None

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "one_rep_max": self.one_rep_max,
            "previous_max": self.previous_max,
            "record": self.record.to_dict(),
        }


def _check_max(value: float) -> None:
    if value <= 0:
        raise ValidationError("One-rep max must be a positive number")
    if value > MAX_PLAUSIBLE_ONE_REP_MAX:
        raise ValidationError(
            f"One-rep max {value} is above {MAX_PLAUSIBLE_ONE_REP_MAX}; check the input"
        )


class OneRepMaxService:
    """Records and looks up per-exercise one-rep maxes."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()
        self.maxes = UserMaxRepository(self.db_path)

    async def set_max(
        self,
        user_id: str,
        exercise_id: str,
        one_rep_max: float,
        source: MaxSource = MaxSource.USER_INPUT,
        notes: str = "",
    ) -> OneRepMax:
        """Record a max, replacing whatever was stored for the exercise."""
        _check_max(one_rep_max)
        record = OneRepMax(
            user_id=user_id,
            exercise_id=exercise_id,
            one_rep_max=one_rep_max,
            source=source,
            notes=notes,
            recorded_at=datetime.now(),
        )
        await self.maxes.upsert(record)
        logger.info(f"Set {exercise_id} max for {user_id} to {one_rep_max} ({source.value})")
        return record

    async def calculate_and_save_max(
        self,
        user_id: str,
        exercise_id: str,
        weight: float,
        reps: int,
        notes: str = "",
    ) -> MaxUpdate:
        """Estimate a max from one set and keep it only if it beats the stored one."""
        if weight <= 0:
            raise ValidationError("Weight must be positive")
        if reps <= 0:
            raise ValidationError("Reps must be positive")

        estimate = calculate_one_rep_max(weight, reps)
        _check_max(estimate)
        described = f"Calculated from {weight} x {reps}"
        if notes:
            described = f"{notes} ({described})"

        async with transaction(self.db_path) as db:
            existing = await self.maxes.get(user_id, exercise_id, db=db)
            if existing is not None and estimate <= existing.one_rep_max:
                return MaxUpdate("unchanged", estimate, existing, existing.one_rep_max)

            record = OneRepMax(
                user_id=user_id,
                exercise_id=exercise_id,
                one_rep_max=estimate,
                source=MaxSource.CALCULATED,
                notes=described,
                recorded_at=datetime.now(),
            )
            await self.maxes.upsert(record, db=db)

        logger.info(f"Estimated {exercise_id} max for {user_id} at {estimate}")
        if existing is None:
            return MaxUpdate("created", estimate, record)
        return MaxUpdate("updated", estimate, record, existing.one_rep_max)

    async def get_max(self, user_id: str, exercise_id: str) -> OneRepMax | None:
        return await self.maxes.get(user_id, exercise_id)

    async def get_maxes_for_exercises(
        self, user_id: str, exercise_ids: list[str]
    ) -> dict[str, float]:
        return await self.maxes.get_for_exercises(user_id, exercise_ids)

    async def list_maxes(self, user_id: str) -> list[OneRepMax]:
        return await self.maxes.list_by_user(user_id)

    async def delete_max(self, user_id: str, exercise_id: str) -> None:
        if not await self.maxes.delete(user_id, exercise_id):
            raise NotFound(f"No max recorded for {exercise_id}")
        logger.info(f"Deleted {exercise_id} max for {user_id}")
