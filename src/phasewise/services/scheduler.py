"""Program scheduler: slot resolution, overrides and phase progression.

The canonical template grid is never modified. Athlete-specific changes live
in the ``ScheduleOverride`` record, and every mutation below runs in a single
database transaction so callers never observe a half-applied change.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

import aiosqlite
from loguru import logger

from ..config import Settings, get_settings
from ..db.engine import get_db_path, transaction
from ..db.repositories import (
    ProgramStateRepository,
    ReassessmentRepository,
    ScheduleOverrideRepository,
    TemplateRepository,
    WorkoutSessionRepository,
)
from ..errors import (
    AlreadyCompleted,
    NotFound,
    NotPaused,
    PhaseIncomplete,
    PhaseLocked,
    ProgramPaused,
    ReassessmentNotPending,
    StateConflict,
    SwapRejected,
    ValidationError,
)
from ..models.program_state import (
    AdvanceResult,
    ProgramIntake,
    ProgramState,
    ProgramStatus,
    ReassessmentDifficulty,
    ReassessmentRecord,
)
from ..models.schedule import PhaseOverview, ScheduleOverride, Slot, SlotView
from ..models.template import WorkoutTemplate
from ..models.training import PHASE_ORDER, AgeGroup, Phase, SkillLevel

MAX_DAYS_PER_WEEK = 7
MIN_WEEKS_PER_PHASE = 2
MAX_WEEKS_PER_PHASE = 8

# Skill level -> (next level, minimum completion rate, minimum prior reassessments)
SKILL_UPGRADES: dict[SkillLevel, tuple[SkillLevel, float, int]] = {
    SkillLevel.NOVICE: (SkillLevel.MODERATE, 0.75, 0),
    SkillLevel.MODERATE: (SkillLevel.ADVANCED, 0.80, 2),
}


def weeks_per_phase_for(weeks_until_season: int | None, default: int = 4) -> int:
    """Split the weeks before the season evenly over the three phases."""
    if weeks_until_season is None or weeks_until_season <= 0:
        return default
    return max(MIN_WEEKS_PER_PHASE, min(MAX_WEEKS_PER_PHASE, weeks_until_season // 3))


def next_skill_level(
    current: SkillLevel,
    completion_rate: float,
    difficulty: ReassessmentDifficulty,
    prior_reassessments: int,
) -> SkillLevel:
    """Skill level after a reassessment; upgrades need an easy-enough phase."""
    if difficulty == ReassessmentDifficulty.TOO_HARD:
        return current
    upgrade = SKILL_UPGRADES.get(current)
    if upgrade is None:
        return current
    target, min_rate, min_prior = upgrade
    if completion_rate >= min_rate and prior_reassessments >= min_prior:
        return target
    return current


@dataclass
class _ScheduleView:
    """Everything needed to resolve slots for one athlete and phase."""

    state: ProgramState
    override: ScheduleOverride
    grid: dict[tuple[int, int], WorkoutTemplate]
    completed: set[int]

    def resolve(self, slot: Slot) -> int | None:
        overridden, template_id = self.override.lookup(slot)
        if overridden:
            return template_id
        return self.canonical(slot)

    def canonical(self, slot: Slot) -> int | None:
        template = self.grid.get((slot.week, slot.day))
        return template.id if template else None

    def slots(self, phase: Phase) -> list[Slot]:
        return [
            Slot(phase, week, day)
            for week in range(1, self.state.weeks_per_phase + 1)
            for day in range(1, self.state.days_per_week + 1)
        ]

    def slot_of(self, phase: Phase, template_id: int) -> Slot | None:
        for slot in self.slots(phase):
            if self.resolve(slot) == template_id:
                return slot
        return None


class ProgramScheduler:
    """Resolves and mutates an athlete's schedule."""

    def __init__(self, db_path: Path | None = None, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.db_path = db_path or get_db_path()
        self.templates = TemplateRepository(self.db_path)
        self.states = ProgramStateRepository(self.db_path)
        self.overrides = ScheduleOverrideRepository(self.db_path)
        self.sessions = WorkoutSessionRepository(self.db_path)
        self.reassessments = ReassessmentRepository(self.db_path)

    # ------------------------------------------------------------------
    # Program state
    # ------------------------------------------------------------------

    async def start_program(self, intake: ProgramIntake) -> ProgramState:
        """Create the athlete's program from onboarding answers."""
        if not 1 <= intake.training_days_per_week <= MAX_DAYS_PER_WEEK:
            raise ValidationError(
                f"Training days per week must be between 1 and {MAX_DAYS_PER_WEEK}"
            )
        if intake.years_of_experience < 0:
            raise ValidationError("Years of experience cannot be negative")
        try:
            age_group = AgeGroup.normalize(intake.age_group)
        except ValueError as e:
            raise ValidationError(f"Unknown age group: {intake.age_group}") from e

        state = ProgramState(
            user_id=intake.user_id,
            category_id=intake.category_id,
            skill_level=SkillLevel.from_years_of_experience(intake.years_of_experience),
            age_group=age_group,
            days_per_week=intake.training_days_per_week,
            weeks_per_phase=weeks_per_phase_for(
                intake.weeks_until_season, self.settings.default_weeks_per_phase
            ),
            created_at=datetime.now(),
        )

        async with transaction(self.db_path) as db:
            if await self.states.get_by_user(intake.user_id, db=db) is not None:
                raise StateConflict(f"User {intake.user_id} already has a program")
            await self.states.create(state, db=db)

        logger.info(
            f"Started program for {state.user_id}: category {state.category_id}, "
            f"{state.skill_level.value}, {state.days_per_week} days x "
            f"{state.weeks_per_phase} weeks per phase"
        )
        return state

    async def get_state(
        self, user_id: str, db: aiosqlite.Connection | None = None
    ) -> ProgramState:
        state = await self.states.get_by_user(user_id, db=db)
        if state is None:
            raise NotFound(f"No program found for user {user_id}")
        return state

    async def update_skill_level(self, user_id: str, skill_level: SkillLevel) -> ProgramState:
        async with transaction(self.db_path) as db:
            state = await self.get_state(user_id, db=db)
            state.skill_level = skill_level
            await self.states.update(state, db=db)
        logger.info(f"Skill level for {user_id} set to {skill_level.value}")
        return state

    async def update_age_group(self, user_id: str, age_group: AgeGroup | str) -> ProgramState:
        try:
            group = AgeGroup.normalize(age_group)
        except ValueError as e:
            raise ValidationError(f"Unknown age group: {age_group}") from e
        async with transaction(self.db_path) as db:
            state = await self.get_state(user_id, db=db)
            state.age_group = group
            await self.states.update(state, db=db)
        logger.info(f"Age group for {user_id} set to {group.value}")
        return state

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def pause_program(self, user_id: str, reason: str | None = None) -> ProgramState:
        """Pause for an expected absence; the position is frozen until resumed."""
        async with transaction(self.db_path) as db:
            state = await self.get_state(user_id, db=db)
            if state.is_paused:
                raise ProgramPaused(f"Program for {user_id} is already paused")
            state.paused_at = datetime.now()
            state.pause_reason = reason
            await self.states.update(state, db=db)
        logger.info(f"Paused program for {user_id}" + (f": {reason}" if reason else ""))
        return state

    async def resume_program(
        self, user_id: str, now: datetime | None = None
    ) -> tuple[ProgramState, bool]:
        """Resume a paused program.

        A pause longer than ``pause_reset_days`` restarts the program from
        GPP Week 1, Day 1. Returns the state and whether it was restarted.
        """
        now = now or datetime.now()
        async with transaction(self.db_path) as db:
            state = await self.get_state(user_id, db=db)
            if not state.is_paused:
                raise NotPaused(f"Program for {user_id} is not paused")
            was_reset = now - state.paused_at > timedelta(days=self.settings.pause_reset_days)
            if was_reset:
                state.restart()
            else:
                state.paused_at = None
                state.pause_reason = None
            await self.states.update(state, db=db)

        if was_reset:
            logger.warning(
                f"Program for {user_id} was paused over {self.settings.pause_reset_days} "
                f"days; restarted at {state.get_position_display()}"
            )
        else:
            logger.info(f"Resumed program for {user_id} at {state.get_position_display()}")
        return state, was_reset

    async def reset_program(self, user_id: str) -> ProgramState:
        """Start over from GPP Week 1, Day 1, keeping unlocks and history."""
        async with transaction(self.db_path) as db:
            state = await self.get_state(user_id, db=db)
            state.restart()
            await self.states.update(state, db=db)
        logger.info(f"Reset program for {user_id}")
        return state

    async def delete_program(self, user_id: str) -> None:
        """Remove the program so the athlete can redo intake from scratch.

        Sessions and reassessments go with it and the override record is
        emptied. One-rep maxes are kept.
        """
        async with transaction(self.db_path) as db:
            if not await self.states.delete_by_user(user_id, db=db):
                raise NotFound(f"No program found for user {user_id}")
            removed = await self.sessions.delete_by_user(user_id, db=db)
            await self.reassessments.delete_by_user(user_id, db=db)
            if await self.overrides.get_by_user(user_id, db=db) is not None:
                await self.overrides.save(ScheduleOverride(user_id=user_id), db=db)
        logger.info(f"Deleted program for {user_id} ({removed} sessions removed)")

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def _load_view(
        self,
        user_id: str,
        phase: Phase | None = None,
        db: aiosqlite.Connection | None = None,
    ) -> _ScheduleView:
        state = await self.get_state(user_id, db=db)
        override = await self.overrides.get_or_empty(user_id, db=db)
        grid = await self.templates.get_phase_grid(
            state.category_id, state.skill_level, phase or state.phase, db=db
        )
        completed = await self.sessions.get_completed_template_ids(user_id, db=db)
        return _ScheduleView(state, override, grid, completed)

    def _check_slot(self, state: ProgramState, slot: Slot) -> None:
        if not 1 <= slot.week <= state.weeks_per_phase:
            raise ValidationError(
                f"Week {slot.week} is outside 1..{state.weeks_per_phase}"
            )
        max_day = min(state.days_per_week, MAX_DAYS_PER_WEEK)
        if not 1 <= slot.day <= max_day:
            raise ValidationError(f"Day {slot.day} is outside 1..{max_day}")

    async def resolve(self, user_id: str, phase: Phase, week: int, day: int) -> int | None:
        """Template assigned to a slot, or None for a rest day."""
        slot = Slot(phase, week, day)
        view = await self._load_view(user_id, phase)
        self._check_slot(view.state, slot)
        template_id = view.resolve(slot)
        logger.debug(f"Resolved {slot} for {user_id} to {template_id}")
        return template_id

    async def resolve_today(self, user_id: str) -> int | None:
        """Today's focus if it is still open, otherwise the current slot."""
        view = await self._load_view(user_id)
        focus = view.override.today_focus_template_id
        if focus is not None and focus not in view.completed:
            logger.debug(f"Today for {user_id} is focus template {focus}")
            return focus
        state = view.state
        return view.resolve(Slot(state.phase, state.week, state.day))

    async def get_today(self, user_id: str) -> dict:
        """Today's workout with its template and the slot it came from."""
        template_id = await self.resolve_today(user_id)
        state = await self.get_state(user_id)
        override = await self.overrides.get_or_empty(user_id)
        template = await self.templates.get(template_id) if template_id else None
        return {
            "template_id": template_id,
            "template": template,
            "is_focus": (
                template_id is not None
                and template_id == override.today_focus_template_id
            ),
            "is_rest_day": template_id is None,
            "phase": state.phase,
            "week": state.week,
            "day": state.day,
            "trigger_reassessment": state.reassessment_pending_for_phase is not None,
        }

    async def get_phase_overview(self, user_id: str, phase: Phase) -> PhaseOverview:
        """Resolved slots of a phase grouped by week."""
        view = await self._load_view(user_id, phase)
        if not view.state.is_unlocked(phase):
            raise PhaseLocked(f"{phase.value} is locked")

        resolved = {slot: view.resolve(slot) for slot in view.slots(phase)}
        templates = await self.templates.get_many(
            [tid for tid in resolved.values() if tid is not None]
        )

        overview = PhaseOverview(phase=phase)
        for week in range(1, view.state.weeks_per_phase + 1):
            days = []
            for day in range(1, view.state.days_per_week + 1):
                slot = Slot(phase, week, day)
                template_id = resolved[slot]
                template = templates.get(template_id) if template_id else None
                days.append(
                    SlotView(
                        slot=slot,
                        template_id=template_id,
                        template_name=template.name if template else None,
                        overridden=view.override.lookup(slot)[0],
                        completed=template_id in view.completed,
                        is_current=view.state.is_current_slot(phase, week, day),
                    )
                )
            overview.weeks.append(days)
        return overview

    async def get_unlocked_phases(self, user_id: str) -> list[Phase]:
        state = await self.get_state(user_id)
        return state.unlocked_phases

    # ------------------------------------------------------------------
    # Overrides
    # ------------------------------------------------------------------

    def _apply_swap(self, view: _ScheduleView, slot_a: Slot, slot_b: Slot) -> None:
        """Exchange the templates at two slots, validating first."""
        if slot_a.phase != slot_b.phase:
            raise SwapRejected("Workouts can only be swapped within the same phase")
        if slot_a == slot_b:
            raise SwapRejected("Cannot swap a slot with itself")

        template_a = view.resolve(slot_a)
        template_b = view.resolve(slot_b)
        if template_a is None or template_b is None:
            raise SwapRejected("Cannot swap a rest day")
        for slot, template_id in ((slot_a, template_a), (slot_b, template_b)):
            if template_id in view.completed:
                raise SwapRejected(f"The workout at {slot} is already completed")

        for slot, template_id in ((slot_a, template_b), (slot_b, template_a)):
            if template_id == view.canonical(slot):
                view.override.drop(slot)
            else:
                view.override.assign(slot, template_id)

        state = view.state
        touches_today = slot_a.phase == state.phase and any(
            state.is_current_slot(s.phase, s.week, s.day) for s in (slot_a, slot_b)
        )
        if touches_today and view.override.today_focus_template_id is not None:
            view.override.clear_focus()
            logger.info(f"Cleared today's focus for {state.user_id} after swapping today's slot")

    async def swap(self, user_id: str, slot_a: Slot, slot_b: Slot) -> ScheduleOverride:
        """Exchange the workouts assigned to two slots of the same phase."""
        async with transaction(self.db_path) as db:
            view = await self._load_view(user_id, slot_a.phase, db=db)
            self._check_slot(view.state, slot_a)
            self._check_slot(view.state, slot_b)
            self._apply_swap(view, slot_a, slot_b)
            await self.overrides.save(view.override, db=db)

        logger.info(f"Swapped {slot_a} and {slot_b} for {user_id}")
        return view.override

    async def set_focus_with_swap(
        self, user_id: str, template_id: int, auto_swap: bool = True
    ) -> ScheduleOverride:
        """Pin a template as today's workout, optionally swapping it into this week.

        With ``auto_swap`` the first incomplete slot of the current week (by
        day) trades places with the template's own slot. Focus and swap commit
        together or not at all.
        """
        async with transaction(self.db_path) as db:
            if await self.templates.get(template_id, db=db) is None:
                raise NotFound(f"Template {template_id} not found")

            view = await self._load_view(user_id, db=db)
            if template_id in view.completed:
                raise AlreadyCompleted(f"Template {template_id} is already completed")

            if auto_swap:
                state = view.state
                target = None
                for day in range(1, state.days_per_week + 1):
                    slot = Slot(state.phase, state.week, day)
                    resolved = view.resolve(slot)
                    if resolved is not None and resolved not in view.completed:
                        target = slot
                        break
                source = view.slot_of(state.phase, template_id)
                if target is not None and source is not None and target != source:
                    self._apply_swap(view, source, target)
                    logger.info(f"Moved template {template_id} from {source} to {target}")

            view.override.set_focus(template_id)
            await self.overrides.save(view.override, db=db)

        logger.info(f"Today's focus for {user_id} set to template {template_id}")
        return view.override

    async def clear_focus(self, user_id: str) -> ScheduleOverride:
        async with transaction(self.db_path) as db:
            override = await self.overrides.get_or_empty(user_id, db=db)
            override.clear_focus()
            await self.overrides.save(override, db=db)
        logger.info(f"Cleared today's focus for {user_id}")
        return override

    async def reset_phase_to_default(self, user_id: str, phase: Phase) -> ScheduleOverride:
        """Drop every swap in a phase; today's focus is left alone."""
        async with transaction(self.db_path) as db:
            await self.get_state(user_id, db=db)
            override = await self.overrides.get_or_empty(user_id, db=db)
            override.reset_phase(phase)
            await self.overrides.save(override, db=db)
        logger.info(f"Reset {phase.value} schedule to default for {user_id}")
        return override

    # ------------------------------------------------------------------
    # Progression
    # ------------------------------------------------------------------

    async def advance_position(
        self, state: ProgramState, db: aiosqlite.Connection | None = None
    ) -> AdvanceResult:
        """Move the program to its next day and persist it.

        Runs inside the caller's transaction when ``db`` is given. Exhausting
        the phase flags a reassessment but never unlocks the next phase. A
        paused program cannot move.
        """
        if state.is_paused:
            raise ProgramPaused(f"Program for {state.user_id} is paused; resume it first")
        if state.status == ProgramStatus.COMPLETED:
            logger.debug(f"Program for {state.user_id} is complete; position unchanged")
            return state.advance()
        result = state.advance()
        await self.states.update(state, db=db)
        if result.trigger_reassessment:
            logger.info(
                f"{state.user_id} finished {result.completed_phase.value}; reassessment pending"
            )
        else:
            logger.info(f"{state.user_id} advanced to {state.get_position_display()}")
        return result

    async def completion_rate(
        self,
        state: ProgramState,
        phase: Phase,
        db: aiosqlite.Connection | None = None,
    ) -> tuple[float, int]:
        """Share of a phase's scheduled days completed, and the raw count."""
        completed = await self.sessions.count_completed_in_phase(state.user_id, phase, db=db)
        expected = state.total_days_per_phase
        rate = min(1.0, completed / expected) if expected else 0.0
        return rate, completed

    async def get_reassessment_status(self, user_id: str) -> dict:
        state = await self.get_state(user_id)
        phase = state.reassessment_pending_for_phase
        if phase is None:
            return {"pending": False, "phase": None}
        rate, completed = await self.completion_rate(state, phase)
        return {
            "pending": True,
            "phase": phase,
            "next_phase": phase.next,
            "completion_rate": rate,
            "completed_days": completed,
            "expected_days": state.total_days_per_phase,
            "threshold": self.settings.phase_completion_threshold,
        }

    async def complete_reassessment(
        self,
        user_id: str,
        difficulty: ReassessmentDifficulty,
        notes: str = "",
    ) -> ReassessmentRecord:
        """Finish the end-of-phase reassessment and unlock the next phase.

        This is the only operation that unlocks a phase. Finishing the SSP
        reassessment completes the program instead.
        """
        async with transaction(self.db_path) as db:
            state = await self.get_state(user_id, db=db)
            phase = state.reassessment_pending_for_phase
            if phase is None:
                raise ReassessmentNotPending(f"No reassessment pending for {user_id}")

            rate, _ = await self.completion_rate(state, phase, db=db)
            threshold = self.settings.phase_completion_threshold
            if rate < threshold:
                raise PhaseIncomplete(
                    f"{phase.value} is {rate:.0%} complete; {threshold:.0%} required"
                )

            prior = await self.reassessments.list_by_user(user_id, db=db)
            before = state.skill_level
            after = next_skill_level(before, rate, difficulty, len(prior))

            now = datetime.now()
            record = ReassessmentRecord(
                user_id=user_id,
                phase=phase,
                difficulty=difficulty,
                completion_rate=rate,
                skill_level_before=before,
                skill_level_after=after,
                notes=notes,
                completed_at=now,
            )
            await self.reassessments.create(record, db=db)

            state.skill_level = after
            state.reassessments[phase.value] = now
            state.reassessment_pending_for_phase = None
            if phase.next is None:
                state.status = ProgramStatus.COMPLETED
            else:
                state.unlock(phase.next, at=now)
            await self.states.update(state, db=db)

            override = await self.overrides.get_by_user(user_id, db=db)
            if override is not None and override.today_focus_template_id is not None:
                override.clear_focus()
                await self.overrides.save(override, db=db)

        if state.status == ProgramStatus.COMPLETED:
            logger.info(f"{user_id} completed the final reassessment; program complete")
        else:
            logger.info(f"{user_id} unlocked {state.phase.value} (skill {after.value})")
        return record

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    async def get_progress_summary(self, user_id: str) -> dict:
        state = await self.get_state(user_id)
        override = await self.overrides.get_or_empty(user_id)
        history = await self.sessions.list_history(user_id, limit=10_000)

        days_completed = len({s.template_id for s in history})
        unique_exercises = {
            ex.exercise_id for s in history for ex in s.exercises if ex.completed
        }
        position = state.phase.index * state.total_days_per_phase + (
            (state.week - 1) * state.days_per_week + (state.day - 1)
        )
        if state.status == ProgramStatus.COMPLETED:
            position = len(PHASE_ORDER) * state.total_days_per_phase

        return {
            "user_id": user_id,
            "phase": state.phase,
            "week": state.week,
            "day": state.day,
            "status": state.status,
            "paused": state.is_paused,
            "skill_level": state.skill_level,
            "age_group": state.age_group,
            "days_completed": days_completed,
            "weeks_completed": position // state.days_per_week,
            "phases_completed": len(state.reassessments),
            "unique_exercises": len(unique_exercises),
            "unlocked_phases": state.unlocked_phases,
            "reassessment_pending": state.reassessment_pending_for_phase is not None,
            "overrides_by_phase": {
                phase: override.override_count(phase) for phase in PHASE_ORDER
            },
        }
