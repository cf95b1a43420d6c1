"""Tests for data models."""

import pytest

from phasewise.models import (
    AgeGroup,
    ExerciseCompletion,
    Intensity,
    Phase,
    PrescribedExercise,
    ProgramState,
    ScheduleOverride,
    Section,
    SessionStatus,
    SetRecord,
    SkillLevel,
    Slot,
    WorkoutSession,
    WorkoutTemplate,
)


class TestTrainingEnums:
    """Tests for the shared training vocabulary."""

    def test_phase_order(self):
        assert Phase.GPP.next == Phase.SPP
        assert Phase.SPP.next == Phase.SSP
        assert Phase.SSP.next is None
        assert [p.index for p in Phase] == [0, 1, 2]

    def test_intensity_ordering(self):
        assert Intensity.LOW < Intensity.MODERATE < Intensity.HIGH
        assert min(Intensity.HIGH, Intensity.MODERATE) == Intensity.MODERATE
        assert max([Intensity.LOW, Intensity.HIGH, Intensity.MODERATE]) == Intensity.HIGH

    @pytest.mark.parametrize(
        "years,expected",
        [
            (0, SkillLevel.NOVICE),
            (0.9, SkillLevel.NOVICE),
            (1, SkillLevel.MODERATE),
            (2.5, SkillLevel.MODERATE),
            (3, SkillLevel.ADVANCED),
        ],
    )
    def test_skill_level_from_experience(self, years, expected):
        assert SkillLevel.from_years_of_experience(years) == expected

    def test_age_group_normalizes_legacy_brackets(self):
        assert AgeGroup.normalize("18-35") == AgeGroup.ADULT
        assert AgeGroup.normalize("36+") == AgeGroup.ADULT
        assert AgeGroup.normalize("10-13") == AgeGroup.YOUTH
        assert AgeGroup.normalize(AgeGroup.TEEN) == AgeGroup.TEEN

    def test_age_group_rejects_unknown(self):
        with pytest.raises(ValueError):
            AgeGroup.normalize("5-9")


class TestPrescribedExercise:
    """Tests for sectioned and legacy exercise parsing."""

    def test_sectioned_exercise(self):
        exercise = PrescribedExercise.from_dict(
            {"exercise_id": "squat", "sets": 3, "reps": "5", "section": "cooldown"}
        )
        assert exercise.section == Section.COOLDOWN
        assert exercise.rest_seconds == 60
        assert exercise.intensity == Intensity.MODERATE

    @pytest.mark.parametrize(
        "notes,expected",
        [
            ("Warmup: easy pace", Section.WARMUP),
            ("light warm-up sets", Section.WARMUP),
            ("Warm up the hips", Section.WARMUP),
            ("Cool-down stretch", Section.COOLDOWN),
            ("cool down walk", Section.COOLDOWN),
            ("cooldown", Section.COOLDOWN),
            ("Keep the back flat", Section.MAIN),
            ("", Section.MAIN),
        ],
    )
    def test_legacy_section_inferred_from_notes(self, notes, expected):
        exercise = PrescribedExercise.from_dict(
            {"exercise_id": "x", "sets": 1, "reps": "10", "notes": notes}
        )
        assert exercise.section == expected

    def test_legacy_without_notes_is_main(self):
        exercise = PrescribedExercise.from_dict({"exercise_id": "x", "sets": 1, "reps": "10"})
        assert exercise.section == Section.MAIN

    def test_to_dict_always_carries_section(self):
        exercise = PrescribedExercise.from_dict(
            {"exercise_id": "x", "sets": 1, "reps": "10", "notes": "warmup"}
        )
        data = exercise.to_dict()
        assert data["section"] == "warmup"
        assert PrescribedExercise.from_dict(data) == exercise


class TestWorkoutTemplate:
    """Tests for WorkoutTemplate."""

    def test_main_exercises_sorted_and_filtered(self):
        template = WorkoutTemplate(
            category_id=1,
            phase=Phase.GPP,
            skill_level=SkillLevel.NOVICE,
            week=1,
            day=1,
            name="Day 1",
            exercises=[
                PrescribedExercise("b", 3, "8", 60, 2),
                PrescribedExercise("warm", 1, "5 min", 0, 0, section=Section.WARMUP),
                PrescribedExercise("a", 3, "8", 60, 1),
            ],
        )
        assert [ex.exercise_id for ex in template.main_exercises] == ["a", "b"]
        assert [ex.exercise_id for ex in template.warmup_exercises] == ["warm"]
        assert template.cooldown_exercises == []

    def test_from_dict_with_legacy_exercises(self):
        template = WorkoutTemplate.from_dict(
            {
                "category_id": 2,
                "phase": "SPP",
                "skill_level": "Moderate",
                "week": 1,
                "day": 2,
                "name": "Power",
                "exercises": [
                    {"exercise_id": "skips", "sets": 1, "reps": "30s", "notes": "Warm-up"},
                    {"exercise_id": "clean", "sets": 4, "reps": "3", "order_index": 1},
                ],
            },
            id=7,
        )
        assert template.id == 7
        assert template.phase == Phase.SPP
        assert [ex.exercise_id for ex in template.main_exercises] == ["clean"]

    def test_summary_lists_sections(self):
        template = WorkoutTemplate(
            category_id=1,
            phase=Phase.GPP,
            skill_level=SkillLevel.NOVICE,
            week=1,
            day=1,
            name="Full Body",
            exercises=[PrescribedExercise("squat", 3, "8", 60, 0)],
        )
        summary = template.get_summary()
        assert "Full Body" in summary
        assert "Main:" in summary
        assert "squat: 3x8" in summary


class TestProgramState:
    """Tests for program position and phase unlocks."""

    def _state(self, **kwargs) -> ProgramState:
        defaults = dict(
            user_id="u",
            category_id=1,
            skill_level=SkillLevel.NOVICE,
            age_group=AgeGroup.TEEN,
            days_per_week=3,
            weeks_per_phase=2,
        )
        defaults.update(kwargs)
        return ProgramState(**defaults)

    def test_advance_within_week(self):
        state = self._state()
        result = state.advance()
        assert (state.week, state.day) == (1, 2)
        assert not result.trigger_reassessment

    def test_advance_wraps_to_next_week(self):
        state = self._state(day=3)
        state.advance()
        assert (state.phase, state.week, state.day) == (Phase.GPP, 2, 1)

    def test_advance_past_last_day_flags_reassessment(self):
        state = self._state(week=2, day=3)
        result = state.advance()

        assert result.trigger_reassessment
        assert result.completed_phase == Phase.GPP
        assert result.next_phase == Phase.SPP
        assert (state.phase, state.week, state.day) == (Phase.GPP, 2, 3)
        assert state.unlocked_phases == [Phase.GPP]

    def test_advance_while_pending_does_not_move(self):
        state = self._state(week=2, day=3)
        state.advance()
        result = state.advance()
        assert result.trigger_reassessment
        assert (state.week, state.day) == (2, 3)

    def test_final_phase_has_no_next(self):
        state = self._state(phase=Phase.SSP, week=2, day=3)
        result = state.advance()
        assert result.completed_phase == Phase.SSP
        assert result.next_phase is None

    def test_unlock_moves_to_first_slot(self):
        state = self._state(week=2, day=3)
        state.unlock(Phase.SPP)
        assert state.is_unlocked(Phase.SPP)
        assert not state.is_unlocked(Phase.SSP)
        assert (state.phase, state.week, state.day) == (Phase.SPP, 1, 1)

    def test_round_trip_keeps_unlocks(self):
        state = self._state()
        state.unlock(Phase.SPP)
        restored = ProgramState.from_dict(state.to_dict())
        assert restored.spp_unlocked_at == state.spp_unlocked_at
        assert restored.phase == Phase.SPP

    def test_from_dict_normalizes_legacy_age_group(self):
        data = self._state().to_dict()
        data["age_group"] = "36+"
        assert ProgramState.from_dict(data).age_group == AgeGroup.ADULT


class TestScheduleOverride:
    """Tests for per-athlete slot overrides."""

    def test_lookup_missing_slot(self):
        override = ScheduleOverride(user_id="u")
        assert override.lookup(Slot(Phase.GPP, 1, 1)) == (False, None)

    def test_assign_and_drop(self):
        override = ScheduleOverride(user_id="u")
        slot = Slot(Phase.GPP, 1, 2)
        override.assign(slot, 42)
        assert override.lookup(slot) == (True, 42)
        assert override.override_count(Phase.GPP) == 1

        override.drop(slot)
        assert override.lookup(slot) == (False, None)
        assert Phase.GPP not in override.slot_swaps

    def test_dict_keys_are_week_day_strings(self):
        override = ScheduleOverride(user_id="u")
        override.assign(Slot(Phase.SPP, 2, 3), 9)
        data = override.to_dict()
        assert data["slot_swaps"] == {"SPP": {"2-3": 9}}
        assert ScheduleOverride.from_dict(data).lookup(Slot(Phase.SPP, 2, 3)) == (True, 9)

    def test_focus(self):
        override = ScheduleOverride(user_id="u")
        override.set_focus(5)
        assert override.today_focus_template_id == 5
        assert override.today_focus_set_at is not None
        override.clear_focus()
        assert override.today_focus_template_id is None


class TestWorkoutSession:
    """Tests for session progress models."""

    def test_exercise_completion_recompute(self):
        exercise = ExerciseCompletion("squat", sets=[SetRecord(), SetRecord()])
        assert not exercise.recompute_completed()

        exercise.sets[0] = SetRecord(completed=True, reps_completed=8)
        exercise.sets[1] = SetRecord(skipped=True)
        assert exercise.recompute_completed()

    def test_exercise_without_sets_is_not_complete(self):
        assert not ExerciseCompletion("squat").recompute_completed()

    def test_display_order_defaults_to_template_order(self):
        session = WorkoutSession(
            user_id="u",
            template_id=1,
            user_program_id=1,
            exercises=[ExerciseCompletion("a"), ExerciseCompletion("b")],
        )
        assert session.display_order == [0, 1]
        session.exercise_order = [1, 0]
        assert session.display_order == [1, 0]

    def test_terminal_statuses(self):
        assert not SessionStatus.IN_PROGRESS.is_terminal
        assert SessionStatus.COMPLETED.is_terminal
        assert SessionStatus.ABANDONED.is_terminal

    def test_session_from_dict(self):
        session = WorkoutSession.from_dict(
            {
                "user_id": "u",
                "template_id": 3,
                "user_program_id": 1,
                "status": "abandoned",
                "exercises": [{"exercise_id": "a", "sets": [{"completed": True}]}],
                "target_intensity": "High",
            },
            id=11,
        )
        assert session.id == 11
        assert session.status == SessionStatus.ABANDONED
        assert session.exercises[0].sets[0].is_done
        assert session.target_intensity == Intensity.HIGH
