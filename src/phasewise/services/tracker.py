"""Client-side tracking of an in-progress workout.

The tracker holds a local copy of the session, applies set edits, skips and
reorders to it, and batches writes behind a debounce. Positions used here are
display positions; ``WorkoutSession.exercise_order`` maps each to the
template-aligned index in ``session.exercises``.
"""

import asyncio
import copy

from loguru import logger

from ..errors import (
    PhasewiseError,
    ReorderRejected,
    SessionAlreadyFinalized,
    TransientPersistenceError,
    ValidationError,
)
from ..models.session import ExerciseCompletion, SetRecord, WorkoutSession
from .sessions import CompletionResult, WorkoutSessionService


class SessionTracker:
    """Tracks one session and auto-saves its progress."""

    def __init__(
        self,
        service: WorkoutSessionService,
        session: WorkoutSession,
        debounce_seconds: float | None = None,
    ):
        if session.is_terminal:
            raise SessionAlreadyFinalized(f"Session {session.id} is already {session.status.value}")
        self.service = service
        self.session = copy.deepcopy(session)
        if debounce_seconds is None:
            debounce_seconds = service.settings.autosave_debounce_seconds
        self.debounce_seconds = debounce_seconds
        self.autosave_enabled = True
        self._dirty = False
        self._retry_pending = False
        # Error from a background save, raised by the next flush()
        self.save_error: Exception | None = None
        self._timer: asyncio.Task | None = None
        self._inflight: asyncio.Task | None = None
        self._write_lock = asyncio.Lock()

    @classmethod
    async def start(
        cls,
        service: WorkoutSessionService,
        user_id: str,
        template_id: int,
        **kwargs,
    ) -> "SessionTracker":
        session = await service.start_session(user_id, template_id, **kwargs)
        return cls(service, session)

    @classmethod
    async def resume(
        cls, service: WorkoutSessionService, user_id: str
    ) -> "SessionTracker | None":
        """Pick up the athlete's open session where they left off."""
        session = await service.get_current_session(user_id)
        if session is None:
            return None
        tracker = cls(service, session)
        logger.info(f"Resumed session {session.id} at position {tracker.active_index}")
        return tracker

    # ------------------------------------------------------------------
    # Position
    # ------------------------------------------------------------------

    @property
    def order(self) -> list[int]:
        return self.session.display_order

    @property
    def active_index(self) -> int | None:
        """First display position neither completed nor skipped."""
        for position, index in enumerate(self.order):
            if not self.session.exercises[index].is_done:
                return position
        return None

    @property
    def is_finished(self) -> bool:
        return self.active_index is None

    def exercise_at(self, position: int) -> ExerciseCompletion:
        return self.session.exercises[self._index_for(position)]

    def prescription_at(self, position: int) -> dict:
        index = self._index_for(position)
        if index < len(self.session.prescriptions):
            return self.session.prescriptions[index]
        return {}

    def _index_for(self, position: int) -> int:
        order = self.order
        if not 0 <= position < len(order):
            raise ValidationError(f"No exercise at position {position}")
        return order[position]

    def _check_open(self) -> None:
        if self.session.is_terminal:
            raise SessionAlreadyFinalized(
                f"Session {self.session.id} is already {self.session.status.value}"
            )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update_set(self, position: int, set_index: int, record: SetRecord) -> ExerciseCompletion:
        """Overwrite one set and recompute whether its exercise is complete."""
        self._check_open()
        exercise = self.exercise_at(position)
        if not 0 <= set_index < len(exercise.sets):
            raise ValidationError(
                f"Exercise {exercise.exercise_id} has no set {set_index}"
            )
        exercise.sets[set_index] = copy.copy(record)
        exercise.recompute_completed()
        self._schedule_save()
        return exercise

    def skip_exercise(self, position: int) -> ExerciseCompletion:
        self._check_open()
        exercise = self.exercise_at(position)
        exercise.skipped = True
        self._schedule_save()
        return exercise

    def set_notes(self, position: int, notes: str) -> ExerciseCompletion:
        self._check_open()
        exercise = self.exercise_at(position)
        exercise.notes = notes
        self._schedule_save()
        return exercise

    def reorder_upcoming(self, from_position: int, to_position: int) -> list[int]:
        """Move an upcoming exercise to another upcoming position.

        Only positions strictly after the active one may move or be moved
        into; the active and already-passed exercises stay where they are.
        """
        self._check_open()
        order = self.order
        for position in (from_position, to_position):
            if not 0 <= position < len(order):
                raise ValidationError(f"No exercise at position {position}")

        active = self.active_index
        if active is None or from_position <= active or to_position <= active:
            raise ReorderRejected("Only upcoming exercises can be reordered")

        order.insert(to_position, order.pop(from_position))
        self.session.exercise_order = order
        self._schedule_save()
        return order

    # ------------------------------------------------------------------
    # Auto-save
    # ------------------------------------------------------------------

    def _schedule_save(self) -> None:
        """Restart the debounce timer; one write per burst of changes."""
        self._dirty = True
        if not self.autosave_enabled:
            return
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._save_after_delay())

    async def _save_after_delay(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._timer = None
        self._inflight = asyncio.ensure_future(self._save())
        try:
            await asyncio.shield(self._inflight)
        except Exception as e:
            # Nothing awaits the timer task; keep the error for flush()
            self.save_error = e
            logger.exception(f"Auto-save for session {self.session.id} crashed")

    async def _save(self) -> None:
        async with self._write_lock:
            if not self._dirty or not self.autosave_enabled:
                return
            self._dirty = False
            exercises = copy.deepcopy(self.session.exercises)
            order = list(self.session.exercise_order) if self.session.exercise_order else None
            try:
                await self.service.update_progress(self.session.id, exercises, order)
            except TransientPersistenceError as e:
                self._dirty = True
                if self._retry_pending:
                    self._retry_pending = False
                    logger.warning(f"Auto-save for session {self.session.id} failed again: {e}")
                else:
                    self._retry_pending = True
                    logger.debug(f"Auto-save for session {self.session.id} failed, retrying")
                    self._schedule_save()
                return
            except SessionAlreadyFinalized:
                self.autosave_enabled = False
                logger.warning(
                    f"Session {self.session.id} was finalized elsewhere; auto-save disabled"
                )
                return
            except PhasewiseError as e:
                self.save_error = e
                logger.error(f"Auto-save for session {self.session.id} failed: {e}")
                return
            self._retry_pending = False

    async def flush(self) -> None:
        """Write pending changes now instead of waiting for the timer.

        An error that a background save could not recover from is raised here.
        """
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
            await asyncio.gather(self._timer, return_exceptions=True)
            self._timer = None
        if self._inflight is not None and not self._inflight.done():
            await self._inflight
        await self._save()
        if self.save_error is not None:
            error, self.save_error = self.save_error, None
            raise error

    async def _stop_autosave(self) -> None:
        """Disable auto-save for good and wait out any write already started."""
        self.autosave_enabled = False
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
            await asyncio.gather(self._timer, return_exceptions=True)
        self._timer = None
        if self._inflight is not None and not self._inflight.done():
            await self._inflight

    # ------------------------------------------------------------------
    # Terminal transitions
    # ------------------------------------------------------------------

    async def complete(self) -> CompletionResult:
        """Complete the session with the final local state."""
        self._check_open()
        await self._stop_autosave()
        async with self._write_lock:
            result = await self.service.complete_session(
                self.session.id,
                copy.deepcopy(self.session.exercises),
                self.session.exercise_order,
            )
        self.session = result.session
        self._dirty = False
        return result

    async def abandon(self) -> WorkoutSession:
        """Abandon the session, keeping whatever was recorded."""
        self._check_open()
        await self._stop_autosave()
        async with self._write_lock:
            session = await self.service.abandon_session(
                self.session.id,
                copy.deepcopy(self.session.exercises),
                self.session.exercise_order,
            )
        self.session = session
        self._dirty = False
        return session
