"""Schedule routes: today's workout, phase overviews, swaps and focus."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ...models.schedule import ScheduleOverride, Slot
from ...models.training import Phase
from ...services import ProgramScheduler
from ..deps import get_scheduler

router = APIRouter(prefix="/schedule", tags=["schedule"])


class SlotIn(BaseModel):
    phase: Phase
    week: int
    day: int

    def to_slot(self) -> Slot:
        return Slot(self.phase, self.week, self.day)


class SwapRequest(BaseModel):
    slot_a: SlotIn
    slot_b: SlotIn


class FocusRequest(BaseModel):
    template_id: int
    auto_swap: bool = True


def _override_response(override: ScheduleOverride) -> dict:
    return override.to_dict()


@router.get("/{user_id}/today")
async def today(user_id: str, scheduler: ProgramScheduler = Depends(get_scheduler)):
    """The workout to do right now."""
    result = await scheduler.get_today(user_id)
    template = result["template"]
    return {
        **result,
        "template": ({"id": template.id, **template.to_dict()} if template else None),
        "phase": result["phase"].value,
    }


@router.get("/{user_id}/resolve")
async def resolve_slot(
    user_id: str,
    phase: Phase,
    week: int,
    day: int,
    scheduler: ProgramScheduler = Depends(get_scheduler),
):
    template_id = await scheduler.resolve(user_id, phase, week, day)
    return {"phase": phase.value, "week": week, "day": day, "template_id": template_id}


@router.get("/{user_id}/phases/{phase}")
async def phase_overview(
    user_id: str, phase: Phase, scheduler: ProgramScheduler = Depends(get_scheduler)
):
    overview = await scheduler.get_phase_overview(user_id, phase)
    return overview.to_dict()


@router.post("/{user_id}/phases/{phase}/reset")
async def reset_phase(
    user_id: str, phase: Phase, scheduler: ProgramScheduler = Depends(get_scheduler)
):
    override = await scheduler.reset_phase_to_default(user_id, phase)
    return _override_response(override)


@router.post("/{user_id}/swap")
async def swap(
    user_id: str, body: SwapRequest, scheduler: ProgramScheduler = Depends(get_scheduler)
):
    override = await scheduler.swap(user_id, body.slot_a.to_slot(), body.slot_b.to_slot())
    return _override_response(override)


@router.post("/{user_id}/focus")
async def set_focus(
    user_id: str, body: FocusRequest, scheduler: ProgramScheduler = Depends(get_scheduler)
):
    override = await scheduler.set_focus_with_swap(user_id, body.template_id, body.auto_swap)
    return _override_response(override)


@router.delete("/{user_id}/focus")
async def clear_focus(user_id: str, scheduler: ProgramScheduler = Depends(get_scheduler)):
    override = await scheduler.clear_focus(user_id)
    return _override_response(override)
