"""CLI commands for phasewise."""

from .init import init
from .maxes import maxes
from .program import program
from .schedule import schedule
from .serve import serve
from .session import session
from .templates import templates

__all__ = [
    "init",
    "maxes",
    "program",
    "schedule",
    "serve",
    "session",
    "templates",
]
