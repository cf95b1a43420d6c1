"""Training vocabulary shared across the scheduler, sessions and scaling."""

from enum import Enum


class Phase(str, Enum):
    """Training macro-cycles, in program order."""

    GPP = "GPP"  # General physical preparedness
    SPP = "SPP"  # Sport-specific preparedness
    SSP = "SSP"  # Sport-specific peaking

    @property
    def index(self) -> int:
        return PHASE_ORDER.index(self)

    @property
    def next(self) -> "Phase | None":
        """The phase that follows this one, or None after SSP."""
        if self.index + 1 < len(PHASE_ORDER):
            return PHASE_ORDER[self.index + 1]
        return None


PHASE_ORDER: list[Phase] = [Phase.GPP, Phase.SPP, Phase.SSP]


class SkillLevel(str, Enum):
    """Athlete skill level used to pick templates."""

    NOVICE = "Novice"  # < 1 year of training
    MODERATE = "Moderate"  # 1-3 years
    ADVANCED = "Advanced"  # 3+ years

    @classmethod
    def from_years_of_experience(cls, years: float) -> "SkillLevel":
        """Initial skill level assigned at intake."""
        if years < 1:
            return cls.NOVICE
        if years < 3:
            return cls.MODERATE
        return cls.ADVANCED


class AgeGroup(str, Enum):
    """Age brackets with distinct loading rules."""

    YOUTH = "10-13"
    TEEN = "14-17"
    ADULT = "18+"

    @classmethod
    def normalize(cls, value: "str | AgeGroup") -> "AgeGroup":
        """Map stored age group strings, including legacy brackets, to an AgeGroup."""
        if isinstance(value, AgeGroup):
            return value
        legacy = {"18-35": cls.ADULT, "36+": cls.ADULT}
        if value in legacy:
            return legacy[value]
        return cls(value)


class Intensity(str, Enum):
    """Prescription intensity, totally ordered Low < Moderate < High."""

    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"

    @property
    def rank(self) -> int:
        return INTENSITY_ORDER.index(self)

    def __lt__(self, other):
        if not isinstance(other, Intensity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Intensity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Intensity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Intensity):
            return NotImplemented
        return self.rank >= other.rank


INTENSITY_ORDER: list[Intensity] = [Intensity.LOW, Intensity.MODERATE, Intensity.HIGH]


class Section(str, Enum):
    """Part of a workout an exercise belongs to."""

    WARMUP = "warmup"
    MAIN = "main"
    COOLDOWN = "cooldown"
