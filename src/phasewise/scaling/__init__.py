"""Prescription scaling engine."""

from .intensity import (
    ScaledBodyweight,
    ScaledPrescription,
    ScaledWeighted,
    apply_intensity_to_bodyweight,
    apply_intensity_to_weighted,
    calculate_one_rep_max,
    calculate_target_weight,
    cap_intensity_for_age,
    effective_one_rep_max_ceiling,
    max_sets_for_age,
    one_rep_max_range,
    scale,
)
from .reps import format_reps, parse_reps, reps_as_int, scale_reps_or_duration
from .tables import AGE_INTENSITY_RULES, INTENSITY_CONFIG, PHASE_INTENSITY_RANGES, Range

__all__ = [
    "AGE_INTENSITY_RULES",
    "INTENSITY_CONFIG",
    "PHASE_INTENSITY_RANGES",
    "Range",
    "ScaledBodyweight",
    "ScaledPrescription",
    "ScaledWeighted",
    "apply_intensity_to_bodyweight",
    "apply_intensity_to_weighted",
    "calculate_one_rep_max",
    "calculate_target_weight",
    "cap_intensity_for_age",
    "effective_one_rep_max_ceiling",
    "format_reps",
    "max_sets_for_age",
    "one_rep_max_range",
    "parse_reps",
    "reps_as_int",
    "scale",
    "scale_reps_or_duration",
]
