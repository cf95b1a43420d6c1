"""Data models for phasewise."""

from .one_rep_max import MaxSource, OneRepMax
from .program_state import (
    AdvanceResult,
    ProgramIntake,
    ProgramState,
    ProgramStatus,
    ReassessmentDifficulty,
    ReassessmentRecord,
)
from .schedule import PhaseOverview, ScheduleOverride, Slot, SlotView
from .session import ExerciseCompletion, SessionStatus, SetRecord, WorkoutSession
from .template import LegacyExercise, PrescribedExercise, SectionedExercise, WorkoutTemplate
from .training import AgeGroup, Intensity, Phase, Section, SkillLevel

__all__ = [
    "AdvanceResult",
    "AgeGroup",
    "ExerciseCompletion",
    "Intensity",
    "LegacyExercise",
    "MaxSource",
    "OneRepMax",
    "Phase",
    "PhaseOverview",
    "PrescribedExercise",
    "ProgramIntake",
    "ProgramState",
    "ProgramStatus",
    "ReassessmentDifficulty",
    "ReassessmentRecord",
    "ScheduleOverride",
    "Section",
    "SectionedExercise",
    "SessionStatus",
    "SetRecord",
    "SkillLevel",
    "Slot",
    "SlotView",
    "WorkoutSession",
    "WorkoutTemplate",
]
