"""Prescription scaling by age group, phase and intensity.

Everything here is a pure function of its arguments: the same inputs always
produce the same prescription, whether computed when a session starts or
again later for display.
"""

import math
from dataclasses import dataclass

from ..models.template import PrescribedExercise
from ..models.training import AgeGroup, Intensity, Phase, SkillLevel
from .reps import parse_reps, reps_as_int, round_half_up, scale_reps_or_duration
from .tables import (
    AGE_INTENSITY_RULES,
    BODYWEIGHT_INTENSITY_MULTIPLIERS,
    INTENSITY_CONFIG,
    PHASE_INTENSITY_RANGES,
    Range,
)


@dataclass(frozen=True)
class ScaledPrescription:
    """What the athlete actually performs for one prescribed exercise."""

    exercise_id: str
    sets: int
    reps: str
    rest_seconds: int
    intensity: Intensity
    one_rep_max_range: Range
    effective_ceiling: float
    target_weight: float | None = None
    percent_of_one_rep_max: int | None = None
    one_rep_max: float | None = None
    rpe_target: Range | None = None

    def to_dict(self) -> dict:
        return {
            "exercise_id": self.exercise_id,
            "sets": self.sets,
            "reps": self.reps,
            "rest_seconds": self.rest_seconds,
            "intensity": self.intensity.value,
            "one_rep_max_range": self.one_rep_max_range.to_dict(),
            "effective_ceiling": self.effective_ceiling,
            "target_weight": self.target_weight,
            "percent_of_one_rep_max": self.percent_of_one_rep_max,
            "one_rep_max": self.one_rep_max,
            "rpe_target": self.rpe_target.to_dict() if self.rpe_target else None,
        }


@dataclass(frozen=True)
class ScaledWeighted:
    sets: int
    reps: int
    rest_seconds: int
    percent_of_one_rep_max: int
    rpe_target: Range
    weight: int | None = None


@dataclass(frozen=True)
class ScaledBodyweight:
    exercise_id: str
    is_substituted: bool
    reps: str
    rest_seconds: int
    rpe_target: Range


def effective_one_rep_max_ceiling(age_group: AgeGroup, phase: Phase) -> float:
    """The lower of the age ceiling and the phase's upper bound."""
    return min(
        AGE_INTENSITY_RULES[age_group].one_rep_max_ceiling,
        PHASE_INTENSITY_RANGES[phase].max,
    )


def one_rep_max_range(age_group: AgeGroup, phase: Phase) -> Range:
    """The phase loading range with its top capped for the age group."""
    return Range(PHASE_INTENSITY_RANGES[phase].min, effective_one_rep_max_ceiling(age_group, phase))


def cap_intensity_for_age(intensity: Intensity, age_group: AgeGroup) -> Intensity:
    return min(intensity, AGE_INTENSITY_RULES[age_group].max_intensity)


def max_sets_for_age(age_group: AgeGroup) -> int:
    return AGE_INTENSITY_RULES[age_group].max_sets_per_exercise


def scale(
    base: PrescribedExercise,
    age_group: AgeGroup,
    phase: Phase,
    skill_level: SkillLevel,
    intensity: Intensity | None = None,
    one_rep_max: float | None = None,
) -> ScaledPrescription:
    """Scale a template prescription for an athlete.

    The load ceiling is ``min(age ceiling, phase max)``; sets are capped at
    the age group's maximum and intensity at its maximum level. Reps keep the
    template's range since templates are already authored per skill level.

    A session ``intensity`` replaces the template's level and runs the
    prescription through the intensity matrix; the load percentage still
    never exceeds the ceiling. ``one_rep_max`` is the athlete's own max for
    the exercise and takes the place of the template's base load, with the
    result rounded to the nearest 2.5.
    """
    age_group = AgeGroup.normalize(age_group)
    ceiling = effective_one_rep_max_ceiling(age_group, phase)
    level = cap_intensity_for_age(
        intensity if intensity is not None else base.intensity, age_group
    )
    weighted = one_rep_max is not None or base.target_weight is not None

    sets, reps, rest_seconds = base.sets, base.reps, base.rest_seconds
    percent = ceiling
    rpe_target = None
    if intensity is not None:
        config = INTENSITY_CONFIG[level]
        rpe_target = config.rpe_target
        percent = min(ceiling, config.one_rep_max_percent.midpoint)
        if weighted:
            rep_count = reps_as_int(base.reps)
            adjusted = apply_intensity_to_weighted(
                base.sets, rep_count or 1, base.rest_seconds, level
            )
            sets, rest_seconds = adjusted.sets, adjusted.rest_seconds
            # Durations and AMRAP keep their prescription
            if rep_count is not None and adjusted.reps != rep_count:
                reps = scale_reps_or_duration(base.reps, config.reps_multiplier)
        else:
            adjusted = apply_intensity_to_bodyweight(
                base.reps, base.rest_seconds, level, base.exercise_id
            )
            reps, rest_seconds = adjusted.reps, adjusted.rest_seconds

    target_weight = None
    if one_rep_max is not None:
        target_weight = calculate_target_weight(one_rep_max, percent)
    elif base.target_weight is not None:
        target_weight = base.target_weight * percent

    return ScaledPrescription(
        exercise_id=base.exercise_id,
        sets=min(sets, max_sets_for_age(age_group)),
        reps=reps,
        rest_seconds=rest_seconds,
        intensity=level,
        one_rep_max_range=one_rep_max_range(age_group, phase),
        effective_ceiling=ceiling,
        target_weight=target_weight,
        percent_of_one_rep_max=round_half_up(percent * 100) if weighted else None,
        one_rep_max=one_rep_max,
        rpe_target=rpe_target,
    )


def apply_intensity_to_weighted(
    sets: int,
    reps: int,
    rest_seconds: int,
    intensity: Intensity,
    one_rep_max: float | None = None,
) -> ScaledWeighted:
    """Apply the intensity matrix to a weighted prescription.

    >>> apply_intensity_to_weighted(4, 8, 60, Intensity.HIGH, 200).weight
    175
    """
    config = INTENSITY_CONFIG[intensity]
    avg_percent = config.one_rep_max_percent.midpoint

    return ScaledWeighted(
        sets=max(1, round_half_up(sets * config.sets_multiplier)),
        reps=max(1, round_half_up(reps * config.reps_multiplier)),
        rest_seconds=max(15, round_half_up(rest_seconds * config.rest_multiplier)),
        weight=round_half_up(one_rep_max * avg_percent) if one_rep_max else None,
        percent_of_one_rep_max=round_half_up(avg_percent * 100),
        rpe_target=config.rpe_target,
    )


def apply_intensity_to_bodyweight(
    reps: str,
    rest_seconds: int,
    intensity: Intensity,
    exercise_id: str,
    easier_variant: str | None = None,
    harder_variant: str | None = None,
) -> ScaledBodyweight:
    """Scale bodyweight volume and pick an easier/harder variant if one exists."""
    config = INTENSITY_CONFIG[intensity]
    scaled_reps = reps
    if parse_reps(reps) is not None:
        scaled_reps = scale_reps_or_duration(reps, BODYWEIGHT_INTENSITY_MULTIPLIERS[intensity])

    variant = exercise_id
    if intensity == Intensity.LOW and easier_variant:
        variant = easier_variant
    elif intensity == Intensity.HIGH and harder_variant:
        variant = harder_variant

    return ScaledBodyweight(
        exercise_id=variant,
        is_substituted=variant != exercise_id,
        reps=scaled_reps,
        rest_seconds=max(15, round_half_up(rest_seconds * config.rest_multiplier)),
        rpe_target=config.rpe_target,
    )


def calculate_one_rep_max(weight: float, reps: int) -> float:
    """Estimate a one-rep max with the Epley formula ``w * (1 + reps / 30)``."""
    if reps <= 0 or weight <= 0:
        return 0
    if reps == 1:
        return weight
    return round_half_up(weight * (1 + reps / 30))


def calculate_target_weight(one_rep_max: float, percent: float) -> float:
    """Load for a percentage of 1RM, rounded to the nearest 2.5."""
    return math.floor(one_rep_max * percent / 2.5 + 0.5) * 2.5

