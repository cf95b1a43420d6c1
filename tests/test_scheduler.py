"""Tests for the program scheduler."""

from datetime import timedelta

import pytest

from phasewise.config import Settings
from phasewise.errors import (
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
from phasewise.models import (
    Phase,
    ProgramIntake,
    ProgramStatus,
    ReassessmentDifficulty,
    SessionStatus,
    SkillLevel,
    Slot,
)
from phasewise.services import ProgramScheduler, WorkoutSessionService
from phasewise.services.scheduler import next_skill_level, weeks_per_phase_for

from conftest import DAYS, WEEKS

USER = "athlete-1"


async def complete_today(scheduler, service, user_id=USER):
    template_id = await scheduler.resolve_today(user_id)
    session = await service.start_session(user_id, template_id)
    return await service.complete_session(session.id)


async def finish_phase(scheduler, service, user_id=USER):
    result = None
    for _ in range(WEEKS * DAYS):
        result = await complete_today(scheduler, service, user_id)
    return result


class TestPolicies:
    """Tests for pure scheduling policies."""

    @pytest.mark.parametrize(
        "weeks,expected",
        [(None, 4), (0, 4), (-3, 4), (3, 2), (6, 2), (12, 4), (24, 8), (100, 8)],
    )
    def test_weeks_per_phase(self, weeks, expected):
        assert weeks_per_phase_for(weeks) == expected

    def test_skill_upgrades(self):
        easy = ReassessmentDifficulty.JUST_RIGHT
        hard = ReassessmentDifficulty.TOO_HARD
        assert next_skill_level(SkillLevel.NOVICE, 0.75, easy, 0) == SkillLevel.MODERATE
        assert next_skill_level(SkillLevel.NOVICE, 0.70, easy, 0) == SkillLevel.NOVICE
        assert next_skill_level(SkillLevel.NOVICE, 1.0, hard, 0) == SkillLevel.NOVICE
        assert next_skill_level(SkillLevel.MODERATE, 0.9, easy, 1) == SkillLevel.MODERATE
        assert next_skill_level(SkillLevel.MODERATE, 0.8, easy, 2) == SkillLevel.ADVANCED
        assert next_skill_level(SkillLevel.ADVANCED, 1.0, easy, 5) == SkillLevel.ADVANCED


class TestStartProgram:
    """Tests for program creation."""

    async def test_start_program(self, program):
        assert program.skill_level == SkillLevel.NOVICE
        assert program.weeks_per_phase == WEEKS
        assert (program.phase, program.week, program.day) == (Phase.GPP, 1, 1)
        assert program.unlocked_phases == [Phase.GPP]

    async def test_start_twice_conflicts(self, program, scheduler, intake):
        with pytest.raises(StateConflict):
            await scheduler.start_program(intake)

    async def test_invalid_intake(self, grid, scheduler, intake):
        intake.age_group = "5-9"
        with pytest.raises(ValidationError):
            await scheduler.start_program(intake)

        intake.age_group = "14-17"
        intake.training_days_per_week = 0
        with pytest.raises(ValidationError):
            await scheduler.start_program(intake)

    async def test_unknown_user(self, grid, scheduler):
        with pytest.raises(NotFound):
            await scheduler.resolve_today("nobody")


class TestResolve:
    """Tests for slot resolution."""

    async def test_every_slot_resolves_to_canonical(self, program, grid, scheduler):
        for week in range(1, WEEKS + 1):
            for day in range(1, DAYS + 1):
                resolved = await scheduler.resolve(USER, Phase.GPP, week, day)
                assert resolved == grid[(Phase.GPP, week, day)]

    @pytest.mark.parametrize("week,day", [(0, 1), (WEEKS + 1, 1), (1, 0), (1, DAYS + 1)])
    async def test_out_of_range(self, program, scheduler, week, day):
        with pytest.raises(ValidationError):
            await scheduler.resolve(USER, Phase.GPP, week, day)

    async def test_missing_template_is_rest_day(self, grid, scheduler, intake):
        intake.user_id = "other"
        intake.category_id = 99
        await scheduler.start_program(intake)
        assert await scheduler.resolve("other", Phase.GPP, 1, 1) is None

        today = await scheduler.get_today("other")
        assert today["is_rest_day"]
        assert today["template"] is None

    async def test_today(self, program, grid, scheduler):
        today = await scheduler.get_today(USER)
        assert today["template_id"] == grid[(Phase.GPP, 1, 1)]
        assert today["template"].name == "GPP W1D1"
        assert not today["is_focus"]
        assert not today["trigger_reassessment"]

    async def test_phase_overview(self, program, grid, scheduler):
        overview = await scheduler.get_phase_overview(USER, Phase.GPP)
        assert len(overview.weeks) == WEEKS
        assert all(len(week) == DAYS for week in overview.weeks)
        current = [view for view in overview.slots if view.is_current]
        assert [view.slot for view in current] == [Slot(Phase.GPP, 1, 1)]

    async def test_locked_phase_overview(self, program, scheduler):
        with pytest.raises(PhaseLocked):
            await scheduler.get_phase_overview(USER, Phase.SPP)


class TestSwap:
    """Tests for swapping slots within a phase."""

    async def test_swap_exchanges_templates(self, program, grid, scheduler):
        a, b = Slot(Phase.GPP, 1, 1), Slot(Phase.GPP, 2, 3)
        await scheduler.swap(USER, a, b)

        assert await scheduler.resolve(USER, Phase.GPP, 1, 1) == grid[(Phase.GPP, 2, 3)]
        assert await scheduler.resolve(USER, Phase.GPP, 2, 3) == grid[(Phase.GPP, 1, 1)]
        assert await scheduler.resolve(USER, Phase.GPP, 1, 2) == grid[(Phase.GPP, 1, 2)]

    async def test_swap_is_self_inverse(self, program, grid, scheduler):
        a, b = Slot(Phase.GPP, 1, 2), Slot(Phase.GPP, 2, 1)
        await scheduler.swap(USER, a, b)
        override = await scheduler.swap(USER, a, b)

        assert override.override_count(Phase.GPP) == 0
        assert await scheduler.resolve(USER, Phase.GPP, 1, 2) == grid[(Phase.GPP, 1, 2)]

    async def test_chained_swaps_keep_every_template(self, program, grid, scheduler):
        await scheduler.swap(USER, Slot(Phase.GPP, 1, 1), Slot(Phase.GPP, 1, 2))
        await scheduler.swap(USER, Slot(Phase.GPP, 1, 2), Slot(Phase.GPP, 1, 3))

        resolved = [await scheduler.resolve(USER, Phase.GPP, 1, d) for d in range(1, 4)]
        assert resolved == [
            grid[(Phase.GPP, 1, 2)],
            grid[(Phase.GPP, 1, 3)],
            grid[(Phase.GPP, 1, 1)],
        ]

    async def test_cross_phase_rejected(self, program, scheduler):
        with pytest.raises(SwapRejected):
            await scheduler.swap(USER, Slot(Phase.GPP, 1, 1), Slot(Phase.SPP, 1, 1))

    async def test_same_slot_rejected(self, program, scheduler):
        slot = Slot(Phase.GPP, 1, 1)
        with pytest.raises(SwapRejected):
            await scheduler.swap(USER, slot, slot)

    async def test_out_of_range_rejected(self, program, scheduler):
        with pytest.raises(ValidationError):
            await scheduler.swap(USER, Slot(Phase.GPP, 1, 1), Slot(Phase.GPP, 1, DAYS + 1))

    async def test_completed_slot_rejected_in_both_orders(self, program, scheduler, service):
        await complete_today(scheduler, service)
        done, other = Slot(Phase.GPP, 1, 1), Slot(Phase.GPP, 2, 1)

        with pytest.raises(SwapRejected):
            await scheduler.swap(USER, done, other)
        with pytest.raises(SwapRejected):
            await scheduler.swap(USER, other, done)

        override = await scheduler.overrides.get_or_empty(USER)
        assert override.override_count(Phase.GPP) == 0

    async def test_rest_day_rejected(self, grid, scheduler, intake):
        intake.user_id = "other"
        intake.category_id = 99
        await scheduler.start_program(intake)
        with pytest.raises(SwapRejected):
            await scheduler.swap("other", Slot(Phase.GPP, 1, 1), Slot(Phase.GPP, 1, 2))

    async def test_swap_through_today_clears_focus(self, program, grid, scheduler):
        await scheduler.set_focus_with_swap(USER, grid[(Phase.GPP, 2, 2)], auto_swap=False)
        override = await scheduler.swap(USER, Slot(Phase.GPP, 1, 1), Slot(Phase.GPP, 1, 3))
        assert override.today_focus_template_id is None

    async def test_reset_phase(self, program, grid, scheduler):
        await scheduler.swap(USER, Slot(Phase.GPP, 1, 1), Slot(Phase.GPP, 1, 2))
        await scheduler.reset_phase_to_default(USER, Phase.GPP)
        assert await scheduler.resolve(USER, Phase.GPP, 1, 1) == grid[(Phase.GPP, 1, 1)]

    async def test_swap_then_complete_advances_by_day(self, program, grid, scheduler, service):
        await scheduler.swap(USER, Slot(Phase.GPP, 1, 1), Slot(Phase.GPP, 1, 2))
        assert await scheduler.resolve_today(USER) == grid[(Phase.GPP, 1, 2)]

        await complete_today(scheduler, service)

        state = await scheduler.get_state(USER)
        assert (state.phase, state.week, state.day) == (Phase.GPP, 1, 2)
        assert await scheduler.resolve_today(USER) == grid[(Phase.GPP, 1, 1)]


class TestFocus:
    """Tests for today's focus."""

    async def test_focus_with_swap(self, program, grid, scheduler):
        target = grid[(Phase.GPP, 2, 3)]
        override = await scheduler.set_focus_with_swap(USER, target)

        assert override.today_focus_template_id == target
        assert await scheduler.resolve_today(USER) == target
        assert await scheduler.resolve(USER, Phase.GPP, 1, 1) == target
        assert await scheduler.resolve(USER, Phase.GPP, 2, 3) == grid[(Phase.GPP, 1, 1)]

        today = await scheduler.get_today(USER)
        assert today["is_focus"]

    async def test_focus_without_swap(self, program, grid, scheduler):
        target = grid[(Phase.GPP, 2, 3)]
        override = await scheduler.set_focus_with_swap(USER, target, auto_swap=False)

        assert override.override_count(Phase.GPP) == 0
        assert await scheduler.resolve_today(USER) == target

    async def test_focus_unknown_template(self, program, scheduler):
        with pytest.raises(NotFound):
            await scheduler.set_focus_with_swap(USER, 9999)
        override = await scheduler.overrides.get_or_empty(USER)
        assert override.today_focus_template_id is None

    async def test_focus_completed_template(self, program, grid, scheduler, service):
        await complete_today(scheduler, service)
        with pytest.raises(AlreadyCompleted):
            await scheduler.set_focus_with_swap(USER, grid[(Phase.GPP, 1, 1)])

    async def test_completed_focus_falls_back_to_slot(self, program, grid, scheduler, service):
        target = grid[(Phase.GPP, 2, 1)]
        await scheduler.set_focus_with_swap(USER, target, auto_swap=False)
        session = await service.start_session(USER, target)
        await service.complete_session(session.id)

        assert await scheduler.resolve_today(USER) == grid[(Phase.GPP, 1, 2)]

    async def test_clear_focus(self, program, grid, scheduler):
        await scheduler.set_focus_with_swap(USER, grid[(Phase.GPP, 2, 1)], auto_swap=False)
        await scheduler.clear_focus(USER)
        assert await scheduler.resolve_today(USER) == grid[(Phase.GPP, 1, 1)]


class TestProgression:
    """Tests for phase progression and reassessment."""

    async def test_finishing_phase_triggers_reassessment(self, program, scheduler, service):
        result = await finish_phase(scheduler, service)

        assert result.trigger_reassessment
        assert result.advance.completed_phase == Phase.GPP
        assert result.advance.next_phase == Phase.SPP
        assert await scheduler.get_unlocked_phases(USER) == [Phase.GPP]

        state = await scheduler.get_state(USER)
        assert (state.phase, state.week, state.day) == (Phase.GPP, WEEKS, DAYS)
        assert state.reassessment_pending_for_phase == Phase.GPP

        today = await scheduler.get_today(USER)
        assert today["trigger_reassessment"]

    async def test_reassessment_unlocks_next_phase(self, program, grid, scheduler, service):
        await finish_phase(scheduler, service)
        status = await scheduler.get_reassessment_status(USER)
        assert status["pending"]
        assert status["completion_rate"] == 1.0

        record = await scheduler.complete_reassessment(USER, ReassessmentDifficulty.TOO_HARD)

        assert record.phase == Phase.GPP
        assert not record.skill_upgraded
        state = await scheduler.get_state(USER)
        assert state.unlocked_phases == [Phase.GPP, Phase.SPP]
        assert (state.phase, state.week, state.day) == (Phase.SPP, 1, 1)
        assert state.reassessment_pending_for_phase is None
        assert await scheduler.resolve_today(USER) == grid[(Phase.SPP, 1, 1)]

    async def test_reassessment_upgrades_skill(self, program, scheduler, service):
        await finish_phase(scheduler, service)
        record = await scheduler.complete_reassessment(USER, ReassessmentDifficulty.JUST_RIGHT)

        assert record.skill_upgraded
        assert record.skill_level_after == SkillLevel.MODERATE
        assert (await scheduler.get_state(USER)).skill_level == SkillLevel.MODERATE

    async def test_reassessment_clears_focus(self, program, grid, scheduler, service):
        await finish_phase(scheduler, service)
        await scheduler.set_focus_with_swap(USER, grid[(Phase.SSP, 1, 1)], auto_swap=False)
        await scheduler.complete_reassessment(USER, ReassessmentDifficulty.TOO_HARD)

        override = await scheduler.overrides.get_or_empty(USER)
        assert override.today_focus_template_id is None

    async def test_no_reassessment_pending(self, program, scheduler):
        with pytest.raises(ReassessmentNotPending):
            await scheduler.complete_reassessment(USER, ReassessmentDifficulty.JUST_RIGHT)

    async def test_completion_threshold(self, grid, temp_db_path, intake):
        settings = Settings(
            data_dir=temp_db_path.parent,
            db_filename=temp_db_path.name,
            phase_completion_threshold=1.0,
        )
        scheduler = ProgramScheduler(temp_db_path, settings)
        service = WorkoutSessionService(temp_db_path, settings, scheduler=scheduler)
        await scheduler.start_program(intake)

        # Repeat the same workout for every day of the phase
        template_id = grid[(Phase.GPP, 1, 1)]
        for _ in range(WEEKS * DAYS):
            session = await service.start_session(USER, template_id)
            await service.complete_session(session.id)

        status = await scheduler.get_reassessment_status(USER)
        assert status["completed_days"] == 1
        with pytest.raises(PhaseIncomplete):
            await scheduler.complete_reassessment(USER, ReassessmentDifficulty.JUST_RIGHT)
        assert await scheduler.get_unlocked_phases(USER) == [Phase.GPP]

    async def test_full_program(self, program, scheduler, service):
        for _ in range(3):
            await finish_phase(scheduler, service)
            await scheduler.complete_reassessment(USER, ReassessmentDifficulty.TOO_HARD)

        state = await scheduler.get_state(USER)
        assert state.status == ProgramStatus.COMPLETED
        assert state.unlocked_phases == [Phase.GPP, Phase.SPP, Phase.SSP]

        summary = await scheduler.get_progress_summary(USER)
        assert summary["days_completed"] == 3 * WEEKS * DAYS
        assert summary["phases_completed"] == 3
        assert summary["weeks_completed"] == 3 * WEEKS

    async def test_workout_after_program_complete(self, program, scheduler, service):
        for _ in range(3):
            await finish_phase(scheduler, service)
            await scheduler.complete_reassessment(USER, ReassessmentDifficulty.TOO_HARD)
        before = await scheduler.get_state(USER)

        result = await complete_today(scheduler, service)

        assert not result.trigger_reassessment
        state = await scheduler.get_state(USER)
        assert state.status == ProgramStatus.COMPLETED
        assert state.reassessment_pending_for_phase is None
        assert (state.phase, state.week, state.day) == (before.phase, before.week, before.day)
        assert not (await scheduler.get_reassessment_status(USER))["pending"]
        with pytest.raises(ReassessmentNotPending):
            await scheduler.complete_reassessment(USER, ReassessmentDifficulty.JUST_RIGHT)


class TestLifecycle:
    """Tests for pausing, resuming, resetting and deleting a program."""

    async def test_pause_blocks_progress(self, program, grid, scheduler, service):
        session = await service.start_session(USER, grid[(Phase.GPP, 1, 1)])
        state = await scheduler.pause_program(USER, reason="travel")
        assert state.is_paused
        assert state.pause_reason == "travel"

        with pytest.raises(ProgramPaused):
            await service.complete_session(session.id)
        with pytest.raises(ProgramPaused):
            await service.start_session(USER, grid[(Phase.GPP, 1, 2)])
        with pytest.raises(ProgramPaused):
            await scheduler.pause_program(USER)

        # The failed completion rolled back with the position
        assert (await service.get_session(session.id)).status == SessionStatus.IN_PROGRESS
        state = await scheduler.get_state(USER)
        assert (state.week, state.day) == (1, 1)

    async def test_short_pause_resumes_in_place(self, program, scheduler, service):
        await complete_today(scheduler, service)
        await scheduler.pause_program(USER)

        state, was_reset = await scheduler.resume_program(USER)

        assert not was_reset
        assert not state.is_paused
        assert (state.week, state.day) == (1, 2)
        await complete_today(scheduler, service)

    async def test_long_pause_restarts(self, program, scheduler, service):
        await finish_phase(scheduler, service)
        await scheduler.complete_reassessment(USER, ReassessmentDifficulty.TOO_HARD)
        await complete_today(scheduler, service)
        paused = await scheduler.pause_program(USER)

        later = paused.paused_at + timedelta(days=15)
        state, was_reset = await scheduler.resume_program(USER, now=later)

        assert was_reset
        assert not state.is_paused
        assert (state.phase, state.week, state.day) == (Phase.GPP, 1, 1)
        # Unlocks are sticky
        assert state.unlocked_phases == [Phase.GPP, Phase.SPP]

    async def test_resume_when_not_paused(self, program, scheduler):
        with pytest.raises(NotPaused):
            await scheduler.resume_program(USER)

    async def test_reset_program(self, program, scheduler, service):
        await finish_phase(scheduler, service)
        assert (await scheduler.get_state(USER)).reassessment_pending_for_phase == Phase.GPP

        state = await scheduler.reset_program(USER)

        assert (state.phase, state.week, state.day) == (Phase.GPP, 1, 1)
        assert state.reassessment_pending_for_phase is None
        assert state.last_workout_at is None
        assert (await scheduler.get_state(USER)).to_dict() == state.to_dict()

    async def test_delete_program(self, program, grid, scheduler, service, intake):
        await scheduler.swap(USER, Slot(Phase.GPP, 1, 2), Slot(Phase.GPP, 1, 3))
        await complete_today(scheduler, service)

        await scheduler.delete_program(USER)

        with pytest.raises(NotFound):
            await scheduler.get_state(USER)
        with pytest.raises(NotFound):
            await scheduler.delete_program(USER)
        assert await service.get_history(USER) == []

        # Intake can be redone from a clean slate
        await scheduler.start_program(intake)
        assert await scheduler.resolve(USER, Phase.GPP, 1, 2) == grid[(Phase.GPP, 1, 2)]
        assert await scheduler.resolve_today(USER) == grid[(Phase.GPP, 1, 1)]


class TestProfile:
    """Tests for profile updates."""

    async def test_update_age_group(self, program, scheduler):
        state = await scheduler.update_age_group(USER, "18-35")
        assert state.age_group.value == "18+"

    async def test_update_skill_level(self, program, scheduler):
        state = await scheduler.update_skill_level(USER, SkillLevel.ADVANCED)
        assert state.skill_level == SkillLevel.ADVANCED

    async def test_other_category_program(self, grid, scheduler):
        intake = ProgramIntake("coach-2", 1, "10-13", 4, 2)
        state = await scheduler.start_program(intake)
        assert state.skill_level == SkillLevel.ADVANCED
        assert state.weeks_per_phase == 4
