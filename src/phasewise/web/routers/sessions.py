"""Workout session routes."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...models.session import ExerciseCompletion
from ...models.training import Intensity
from ...services import WorkoutSessionService
from ..deps import get_session_service

router = APIRouter(prefix="/sessions", tags=["sessions"])


class SetRecordIn(BaseModel):
    completed: bool = False
    skipped: bool = False
    reps_completed: int | None = None
    weight: float | None = None
    duration_seconds: int | None = None
    rpe: float | None = None


class ExerciseCompletionIn(BaseModel):
    exercise_id: str
    completed: bool = False
    skipped: bool = False
    sets: list[SetRecordIn] = Field(default_factory=list)
    notes: str | None = None

    def to_model(self) -> ExerciseCompletion:
        return ExerciseCompletion.from_dict(self.model_dump())


class StartSessionRequest(BaseModel):
    user_id: str
    template_id: int
    exercise_order: list[int] | None = None
    target_intensity: Intensity | None = None


class ProgressRequest(BaseModel):
    exercises: list[ExerciseCompletionIn] | None = None
    exercise_order: list[int] | None = None

    def to_models(self) -> list[ExerciseCompletion] | None:
        if self.exercises is None:
            return None
        return [ex.to_model() for ex in self.exercises]


@router.post("", status_code=201)
async def start_session(
    body: StartSessionRequest,
    service: WorkoutSessionService = Depends(get_session_service),
):
    session = await service.start_session(
        body.user_id, body.template_id, body.exercise_order, body.target_intensity
    )
    return session.to_dict()


@router.get("/current")
async def current_session(
    user_id: str, service: WorkoutSessionService = Depends(get_session_service)
):
    session = await service.get_current_session(user_id)
    return {"session": session.to_dict() if session else None}


@router.get("/completed")
async def completed_templates(
    user_id: str, service: WorkoutSessionService = Depends(get_session_service)
):
    template_ids = await service.get_completed_template_ids(user_id)
    return {"template_ids": sorted(template_ids)}


@router.get("/history")
async def history(
    user_id: str,
    limit: int = 20,
    service: WorkoutSessionService = Depends(get_session_service),
):
    sessions = await service.get_history(user_id, limit=limit)
    return {"sessions": [s.to_dict() for s in sessions]}


@router.get("/template/{template_id}")
async def session_for_template(
    template_id: int,
    user_id: str,
    completed_only: bool = False,
    service: WorkoutSessionService = Depends(get_session_service),
):
    """Most recent session for a template, or the last completed one."""
    if completed_only:
        session = await service.get_last_completed_for_template(user_id, template_id)
    else:
        session = await service.get_session_for_template(user_id, template_id)
    return {"session": session.to_dict() if session else None}


@router.get("/{session_id}")
async def get_session(
    session_id: int, service: WorkoutSessionService = Depends(get_session_service)
):
    session = await service.get_session(session_id)
    return session.to_dict()


@router.put("/{session_id}/progress")
async def update_progress(
    session_id: int,
    body: ProgressRequest,
    service: WorkoutSessionService = Depends(get_session_service),
):
    session = await service.get_session(session_id)
    exercises = body.to_models()
    session = await service.update_progress(
        session_id,
        exercises if exercises is not None else session.exercises,
        body.exercise_order,
    )
    return session.to_dict()


@router.post("/{session_id}/complete")
async def complete_session(
    session_id: int,
    body: ProgressRequest | None = None,
    service: WorkoutSessionService = Depends(get_session_service),
):
    body = body or ProgressRequest()
    result = await service.complete_session(session_id, body.to_models(), body.exercise_order)
    return result.to_dict()


@router.post("/{session_id}/abandon")
async def abandon_session(
    session_id: int,
    body: ProgressRequest | None = None,
    service: WorkoutSessionService = Depends(get_session_service),
):
    body = body or ProgressRequest()
    session = await service.abandon_session(session_id, body.to_models(), body.exercise_order)
    return session.to_dict()
