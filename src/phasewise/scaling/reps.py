"""Parsing and scaling of reps/duration strings such as ``"10-12"`` or ``"30s"``."""

import math
import re
from dataclasses import dataclass
from typing import Literal

Unit = Literal["reps", "seconds"]

_SIDE_RE = re.compile(r"^([\d\s\-]+)\s*(each|per)\s+(side|leg|arm)", re.IGNORECASE)
_MINUTES_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*min(?:utes?)?$", re.IGNORECASE)
_SECONDS_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*s(?:ec(?:onds?)?)?$", re.IGNORECASE)
_RANGE_RE = re.compile(r"^(\d+)\s*-\s*(\d+)$")
_NUMBER_RE = re.compile(r"^(\d+)$")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves rounded up."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class ParsedReps:
    value: float
    unit: Unit
    suffix: str = ""  # " each side", " per leg"


def parse_reps(reps: str) -> ParsedReps | None:
    """Parse a reps/duration prescription.

    ``"10"`` -> 10 reps, ``"30s"`` -> 30 seconds, ``"2 min"`` -> 120 seconds,
    ``"10-12"`` -> 11 reps (midpoint), ``"5 each side"`` -> 5 reps with the
    side suffix kept. ``"AMRAP"`` and anything unrecognised return None.
    """
    text = reps.strip()
    if not text or text.lower() == "amrap":
        return None

    side = _SIDE_RE.match(text)
    if side:
        number = side.group(1).strip()
        suffix = text[len(number):]
        if "-" in number:
            low, high = (int(part) for part in number.split("-", 1))
            return ParsedReps(round_half_up((low + high) / 2), "reps", suffix)
        return ParsedReps(int(number), "reps", suffix)

    minutes = _MINUTES_RE.match(text)
    if minutes:
        return ParsedReps(float(minutes.group(1)) * 60, "seconds")

    seconds = _SECONDS_RE.match(text)
    if seconds:
        return ParsedReps(float(seconds.group(1)), "seconds")

    span = _RANGE_RE.match(text)
    if span:
        low, high = int(span.group(1)), int(span.group(2))
        return ParsedReps(round_half_up((low + high) / 2), "reps")

    number = _NUMBER_RE.match(text)
    if number:
        return ParsedReps(int(number.group(1)), "reps")

    return None


def format_reps(value: float, unit: Unit, suffix: str = "") -> str:
    """Format a scaled value back into a prescription string.

    Durations round to the nearest 5 seconds (minimum 5) and whole minutes
    render as ``"N min"``. Reps round to a whole number, minimum 1.
    """
    if unit == "seconds":
        seconds = max(5, round_half_up(value / 5) * 5)
        if seconds >= 60 and seconds % 60 == 0:
            return f"{seconds // 60} min"
        return f"{seconds}s"

    return f"{max(1, round_half_up(value))}{suffix}"


def scale_reps_or_duration(reps: str, multiplier: float) -> str:
    """Scale a reps/duration string; unparseable strings are returned as-is."""
    parsed = parse_reps(reps)
    if parsed is None:
        return reps
    return format_reps(parsed.value * multiplier, parsed.unit, parsed.suffix)


def reps_as_int(reps: str) -> int | None:
    """Representative rep count for a prescription, or None for durations/AMRAP."""
    parsed = parse_reps(reps)
    if parsed is None or parsed.unit != "reps":
        return None
    return int(parsed.value)
