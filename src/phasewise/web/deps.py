"""Request dependencies shared by the routers."""

from fastapi import Request

from ..services import OneRepMaxService, ProgramScheduler, WorkoutSessionService


def get_scheduler(request: Request) -> ProgramScheduler:
    """Get the scheduler from app state."""
    return request.app.state.scheduler


def get_session_service(request: Request) -> WorkoutSessionService:
    """Get the session service from app state."""
    return request.app.state.sessions


def get_max_service(request: Request) -> OneRepMaxService:
    return request.app.state.maxes
