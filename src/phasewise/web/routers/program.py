"""Program state routes: intake, status, profile inputs and reassessment."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...models.one_rep_max import MaxSource
from ...models.program_state import ProgramIntake, ProgramState, ReassessmentDifficulty
from ...models.training import SkillLevel
from ...services import OneRepMaxService, ProgramScheduler
from ..deps import get_max_service, get_scheduler

router = APIRouter(prefix="/program", tags=["program"])


class IntakeRequest(BaseModel):
    user_id: str
    category_id: int
    age_group: str
    years_of_experience: float = Field(ge=0)
    training_days_per_week: int = Field(ge=1, le=7)
    weeks_until_season: int | None = None


class ProfileUpdate(BaseModel):
    skill_level: SkillLevel | None = None
    age_group: str | None = None


class ReassessmentRequest(BaseModel):
    difficulty: ReassessmentDifficulty
    notes: str = ""


class PauseRequest(BaseModel):
    reason: str | None = None


class MaxRequest(BaseModel):
    one_rep_max: float = Field(gt=0)
    source: MaxSource = MaxSource.USER_INPUT
    notes: str = ""


class MaxFromSetRequest(BaseModel):
    weight: float = Field(gt=0)
    reps: int = Field(gt=0)
    notes: str = ""


def _state_response(state: ProgramState) -> dict:
    return {
        "id": state.id,
        **state.to_dict(),
        "unlocked_phases": [p.value for p in state.unlocked_phases],
        "position": state.get_position_display(),
    }


@router.post("/start", status_code=201)
async def start_program(
    body: IntakeRequest, scheduler: ProgramScheduler = Depends(get_scheduler)
):
    """Create a program from intake answers."""
    state = await scheduler.start_program(
        ProgramIntake(
            user_id=body.user_id,
            category_id=body.category_id,
            age_group=body.age_group,
            years_of_experience=body.years_of_experience,
            training_days_per_week=body.training_days_per_week,
            weeks_until_season=body.weeks_until_season,
        )
    )
    return _state_response(state)


@router.get("/{user_id}")
async def get_program(user_id: str, scheduler: ProgramScheduler = Depends(get_scheduler)):
    state = await scheduler.get_state(user_id)
    return _state_response(state)


@router.get("/{user_id}/unlocked")
async def unlocked_phases(user_id: str, scheduler: ProgramScheduler = Depends(get_scheduler)):
    phases = await scheduler.get_unlocked_phases(user_id)
    return {"unlocked_phases": [p.value for p in phases]}


@router.get("/{user_id}/summary")
async def progress_summary(user_id: str, scheduler: ProgramScheduler = Depends(get_scheduler)):
    summary = await scheduler.get_progress_summary(user_id)
    return {
        **summary,
        "phase": summary["phase"].value,
        "status": summary["status"].value,
        "skill_level": summary["skill_level"].value,
        "age_group": summary["age_group"].value,
        "unlocked_phases": [p.value for p in summary["unlocked_phases"]],
        "overrides_by_phase": {p.value: n for p, n in summary["overrides_by_phase"].items()},
    }


@router.patch("/{user_id}/profile")
async def update_profile(
    user_id: str,
    body: ProfileUpdate,
    scheduler: ProgramScheduler = Depends(get_scheduler),
):
    """Change the inputs that drive template selection and scaling."""
    state = await scheduler.get_state(user_id)
    if body.skill_level is not None:
        state = await scheduler.update_skill_level(user_id, body.skill_level)
    if body.age_group is not None:
        state = await scheduler.update_age_group(user_id, body.age_group)
    return _state_response(state)


@router.get("/{user_id}/reassessment")
async def reassessment_status(
    user_id: str, scheduler: ProgramScheduler = Depends(get_scheduler)
):
    status = await scheduler.get_reassessment_status(user_id)
    if not status["pending"]:
        return status
    return {
        **status,
        "phase": status["phase"].value,
        "next_phase": status["next_phase"].value if status["next_phase"] else None,
    }


@router.post("/{user_id}/reassessment")
async def complete_reassessment(
    user_id: str,
    body: ReassessmentRequest,
    scheduler: ProgramScheduler = Depends(get_scheduler),
):
    """Finish the pending reassessment; unlocks the next phase."""
    record = await scheduler.complete_reassessment(user_id, body.difficulty, body.notes)
    state = await scheduler.get_state(user_id)
    return {"reassessment": record.to_dict(), "program": _state_response(state)}


@router.post("/{user_id}/pause")
async def pause_program(
    user_id: str,
    body: PauseRequest | None = None,
    scheduler: ProgramScheduler = Depends(get_scheduler),
):
    """Freeze the program for an expected absence."""
    state = await scheduler.pause_program(user_id, body.reason if body else None)
    return _state_response(state)


@router.post("/{user_id}/resume")
async def resume_program(user_id: str, scheduler: ProgramScheduler = Depends(get_scheduler)):
    """Resume a paused program; long pauses restart it from GPP Week 1."""
    state, was_reset = await scheduler.resume_program(user_id)
    return {"was_reset": was_reset, "program": _state_response(state)}


@router.post("/{user_id}/reset")
async def reset_program(user_id: str, scheduler: ProgramScheduler = Depends(get_scheduler)):
    state = await scheduler.reset_program(user_id)
    return _state_response(state)


@router.delete("/{user_id}", status_code=204)
async def delete_program(user_id: str, scheduler: ProgramScheduler = Depends(get_scheduler)):
    """Delete the program so intake can be redone."""
    await scheduler.delete_program(user_id)


@router.get("/{user_id}/maxes")
async def list_maxes(user_id: str, maxes: OneRepMaxService = Depends(get_max_service)):
    records = await maxes.list_maxes(user_id)
    return {"maxes": [r.to_dict() for r in records]}


@router.put("/{user_id}/maxes/{exercise_id}")
async def set_max(
    user_id: str,
    exercise_id: str,
    body: MaxRequest,
    maxes: OneRepMaxService = Depends(get_max_service),
):
    record = await maxes.set_max(user_id, exercise_id, body.one_rep_max, body.source, body.notes)
    return record.to_dict()


@router.post("/{user_id}/maxes/{exercise_id}/from-set")
async def max_from_set(
    user_id: str,
    exercise_id: str,
    body: MaxFromSetRequest,
    maxes: OneRepMaxService = Depends(get_max_service),
):
    """Estimate a max from one set; kept only if it beats the stored max."""
    update = await maxes.calculate_and_save_max(
        user_id, exercise_id, body.weight, body.reps, body.notes
    )
    return update.to_dict()


@router.delete("/{user_id}/maxes/{exercise_id}", status_code=204)
async def delete_max(
    user_id: str,
    exercise_id: str,
    maxes: OneRepMaxService = Depends(get_max_service),
):
    await maxes.delete_max(user_id, exercise_id)
