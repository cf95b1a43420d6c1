"""Loading tables for age groups, phases and intensity levels.

| Age Group | Max Intensity | 1RM Ceiling | Max Sets |
|-----------|---------------|-------------|----------|
| 10-13     | Moderate      | 65%         | 3        |
| 14-17     | High          | 85%         | 5        |
| 18+       | High          | 90%         | 6        |

| Phase | 1RM Range | Focus                                        |
|-------|-----------|----------------------------------------------|
| GPP   | 60-75%    | Foundation, movement quality, work capacity  |
| SPP   | 75-85%    | Sport-specific strength, power development   |
| SSP   | 85-90%    | Peaking, maintain gains, competition prep    |

| Variable          | Low    | Moderate | High   |
|-------------------|--------|----------|--------|
| Weight (% of 1RM) | 60-70% | 75-80%   | 85-90% |
| Sets              | 0.75x  | 1x       | 1.25x  |
| Reps              | 1x     | 1x       | 0.85x  |
| Rest              | 1.25x  | 1x       | 0.75x  |
| RPE Target        | 5-6    | 6-7      | 8-9    |
"""

from dataclasses import dataclass

from ..models.training import AgeGroup, Intensity, Phase


@dataclass(frozen=True)
class Range:
    """Inclusive numeric range."""

    min: float
    max: float

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2

    def to_dict(self) -> dict:
        return {"min": self.min, "max": self.max}


@dataclass(frozen=True)
class AgeIntensityRules:
    max_intensity: Intensity
    one_rep_max_ceiling: float
    max_sets_per_exercise: int


@dataclass(frozen=True)
class IntensityConfig:
    one_rep_max_percent: Range
    sets_multiplier: float
    reps_multiplier: float
    rest_multiplier: float
    rpe_target: Range


AGE_INTENSITY_RULES: dict[AgeGroup, AgeIntensityRules] = {
    AgeGroup.YOUTH: AgeIntensityRules(
        max_intensity=Intensity.MODERATE,
        one_rep_max_ceiling=0.65,
        max_sets_per_exercise=3,
    ),
    AgeGroup.TEEN: AgeIntensityRules(
        max_intensity=Intensity.HIGH,
        one_rep_max_ceiling=0.85,
        max_sets_per_exercise=5,
    ),
    AgeGroup.ADULT: AgeIntensityRules(
        max_intensity=Intensity.HIGH,
        one_rep_max_ceiling=0.90,
        max_sets_per_exercise=6,
    ),
}

PHASE_INTENSITY_RANGES: dict[Phase, Range] = {
    Phase.GPP: Range(0.60, 0.75),
    Phase.SPP: Range(0.75, 0.85),
    Phase.SSP: Range(0.85, 0.90),
}

INTENSITY_CONFIG: dict[Intensity, IntensityConfig] = {
    Intensity.LOW: IntensityConfig(
        one_rep_max_percent=Range(0.60, 0.70),
        sets_multiplier=0.75,
        reps_multiplier=1.0,
        rest_multiplier=1.25,
        rpe_target=Range(5, 6),
    ),
    Intensity.MODERATE: IntensityConfig(
        one_rep_max_percent=Range(0.75, 0.80),
        sets_multiplier=1.0,
        reps_multiplier=1.0,
        rest_multiplier=1.0,
        rpe_target=Range(6, 7),
    ),
    Intensity.HIGH: IntensityConfig(
        one_rep_max_percent=Range(0.85, 0.90),
        sets_multiplier=1.25,
        reps_multiplier=0.85,
        rest_multiplier=0.75,
        rpe_target=Range(8, 9),
    ),
}

# Reps and duration multipliers for bodyweight work
BODYWEIGHT_INTENSITY_MULTIPLIERS: dict[Intensity, float] = {
    Intensity.LOW: 0.67,
    Intensity.MODERATE: 1.0,
    Intensity.HIGH: 1.33,
}
