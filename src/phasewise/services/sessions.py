"""Workout session lifecycle: start, progress, complete and abandon.

A session moves ``in_progress -> completed`` or ``in_progress -> abandoned``
and never leaves a terminal state. Completing a session advances the
athlete's program position in the same transaction.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import aiosqlite
from loguru import logger

from ..config import Settings, get_settings
from ..db.engine import get_db_path, transaction
from ..db.repositories import TemplateRepository, UserMaxRepository, WorkoutSessionRepository
from ..errors import (
    AlreadyInProgress,
    NotFound,
    ProgramPaused,
    SessionAlreadyFinalized,
    ValidationError,
)
from ..models.program_state import AdvanceResult
from ..models.session import ExerciseCompletion, SessionStatus, SetRecord, WorkoutSession
from ..models.training import Intensity
from ..scaling import cap_intensity_for_age, scale
from .scheduler import ProgramScheduler


@dataclass
class CompletionResult:
    """A completed session and where the program moved to."""

    session: WorkoutSession
    advance: AdvanceResult

    @property
    def trigger_reassessment(self) -> bool:
        return self.advance.trigger_reassessment

    def to_dict(self) -> dict:
        return {"session": self.session.to_dict(), "advance": self.advance.to_dict()}


def validate_exercise_order(order: list[int], count: int) -> None:
    if sorted(order) != list(range(count)):
        raise ValidationError(f"Exercise order must be a permutation of 0..{count - 1}")


class WorkoutSessionService:
    """Server-side operations on workout sessions."""

    def __init__(
        self,
        db_path: Path | None = None,
        settings: Settings | None = None,
        scheduler: ProgramScheduler | None = None,
    ):
        self.settings = settings or get_settings()
        self.db_path = db_path or get_db_path()
        self.scheduler = scheduler or ProgramScheduler(self.db_path, self.settings)
        self.templates = TemplateRepository(self.db_path)
        self.sessions = WorkoutSessionRepository(self.db_path)
        self.maxes = UserMaxRepository(self.db_path)

    async def start_session(
        self,
        user_id: str,
        template_id: int,
        exercise_order: list[int] | None = None,
        target_intensity: Intensity | None = None,
    ) -> WorkoutSession:
        """Start a session for a template's main exercises.

        Prescriptions are scaled for the athlete and use their recorded
        one-rep maxes. A ``target_intensity`` is capped for the age group and
        applied through the intensity matrix.

        Raises:
            NotFound: unknown template or no program for the athlete.
            AlreadyInProgress: a session for this template is still open.
            ProgramPaused: the program is paused.
        """
        async with transaction(self.db_path) as db:
            state = await self.scheduler.get_state(user_id, db=db)
            if state.is_paused:
                raise ProgramPaused(f"Program for {user_id} is paused; resume it first")
            template = await self.templates.get(template_id, db=db)
            if template is None:
                raise NotFound(f"Template {template_id} not found")

            existing = await self.sessions.get_latest_for_template(
                user_id, template_id, status=SessionStatus.IN_PROGRESS, db=db
            )
            if existing is not None:
                raise AlreadyInProgress(
                    f"Template {template_id} already has session {existing.id} in progress",
                    session_id=existing.id,
                )

            main = template.main_exercises
            if exercise_order is not None:
                validate_exercise_order(exercise_order, len(main))

            intensity = (
                cap_intensity_for_age(target_intensity, state.age_group)
                if target_intensity is not None
                else None
            )
            maxes = await self.maxes.get_for_exercises(
                user_id, [ex.exercise_id for ex in main], db=db
            )
            scaled = [
                scale(
                    ex,
                    state.age_group,
                    template.phase,
                    state.skill_level,
                    intensity=intensity,
                    one_rep_max=maxes.get(ex.exercise_id),
                )
                for ex in main
            ]
            session = WorkoutSession(
                user_id=user_id,
                template_id=template_id,
                user_program_id=state.id,
                exercises=[
                    ExerciseCompletion(
                        exercise_id=p.exercise_id,
                        sets=[SetRecord() for _ in range(max(1, p.sets))],
                    )
                    for p in scaled
                ],
                exercise_order=list(exercise_order) if exercise_order is not None else None,
                target_intensity=intensity,
                prescriptions=[p.to_dict() for p in scaled],
                template_snapshot={
                    "name": template.name,
                    "phase": template.phase.value,
                    "week": template.week,
                    "day": template.day,
                },
                started_at=datetime.now(),
            )
            await self.sessions.create(session, db=db)

        logger.info(f"Started session {session.id} for {user_id} on template {template_id}")
        return session

    async def get_session(self, session_id: int) -> WorkoutSession:
        session = await self.sessions.get(session_id)
        if session is None:
            raise NotFound(f"Session {session_id} not found")
        return session

    async def get_current_session(self, user_id: str) -> WorkoutSession | None:
        """The athlete's open session, if any."""
        return await self.sessions.get_current(user_id)

    async def get_session_for_template(
        self, user_id: str, template_id: int
    ) -> WorkoutSession | None:
        """The most recent session for a template, whatever its status."""
        return await self.sessions.get_latest_for_template(user_id, template_id)

    async def get_last_completed_for_template(
        self, user_id: str, template_id: int
    ) -> WorkoutSession | None:
        return await self.sessions.get_latest_for_template(
            user_id, template_id, status=SessionStatus.COMPLETED
        )

    async def get_completed_template_ids(self, user_id: str) -> set[int]:
        return await self.sessions.get_completed_template_ids(user_id)

    async def get_history(self, user_id: str, limit: int = 20) -> list[WorkoutSession]:
        """Completed sessions, newest first."""
        return await self.sessions.list_history(user_id, limit=limit)

    def _apply_payload(
        self,
        session: WorkoutSession,
        exercises: list[ExerciseCompletion] | None,
        exercise_order: list[int] | None,
    ) -> None:
        """Replace progress after checking it still lines up with the template."""
        if exercises is not None:
            if len(exercises) != len(session.exercises):
                raise ValidationError(
                    f"Expected {len(session.exercises)} exercises, got {len(exercises)}"
                )
            for index, (new, old) in enumerate(zip(exercises, session.exercises)):
                if new.exercise_id != old.exercise_id:
                    raise ValidationError(
                        f"Exercise {index} is {new.exercise_id}, expected {old.exercise_id}"
                    )
            session.exercises = list(exercises)
        if exercise_order is not None:
            validate_exercise_order(exercise_order, len(session.exercises))
            session.exercise_order = list(exercise_order)

    async def _load_open(self, session_id: int, db: aiosqlite.Connection) -> WorkoutSession:
        session = await self.sessions.get(session_id, db=db)
        if session is None:
            raise NotFound(f"Session {session_id} not found")
        if session.is_terminal:
            raise SessionAlreadyFinalized(
                f"Session {session_id} is already {session.status.value}"
            )
        return session

    async def update_progress(
        self,
        session_id: int,
        exercises: list[ExerciseCompletion],
        exercise_order: list[int] | None = None,
    ) -> WorkoutSession:
        """Persist in-progress set data."""
        async with transaction(self.db_path) as db:
            session = await self._load_open(session_id, db)
            self._apply_payload(session, exercises, exercise_order)
            await self.sessions.update(session, db=db)
        logger.debug(f"Saved progress for session {session_id}")
        return session

    async def complete_session(
        self,
        session_id: int,
        exercises: list[ExerciseCompletion] | None = None,
        exercise_order: list[int] | None = None,
    ) -> CompletionResult:
        """Finalize a session and advance the program by one day.

        The session write and the position change commit together. A second
        call fails with ``SessionAlreadyFinalized`` and changes nothing.
        """
        async with transaction(self.db_path) as db:
            session = await self._load_open(session_id, db)
            self._apply_payload(session, exercises, exercise_order)

            now = datetime.now()
            session.status = SessionStatus.COMPLETED
            session.completed_at = now
            if session.started_at is not None:
                session.total_duration_seconds = max(
                    0, int((now - session.started_at).total_seconds())
                )
            await self.sessions.update(session, db=db)

            state = await self.scheduler.get_state(session.user_id, db=db)
            advance = await self.scheduler.advance_position(state, db=db)

        logger.info(
            f"Completed session {session_id} ({session.completed_exercise_count}/"
            f"{len(session.exercises)} exercises)"
        )
        return CompletionResult(session=session, advance=advance)

    async def abandon_session(
        self,
        session_id: int,
        exercises: list[ExerciseCompletion] | None = None,
        exercise_order: list[int] | None = None,
    ) -> WorkoutSession:
        """Stop a session, keeping its partial data; the program does not move."""
        async with transaction(self.db_path) as db:
            session = await self._load_open(session_id, db)
            self._apply_payload(session, exercises, exercise_order)
            session.status = SessionStatus.ABANDONED
            await self.sessions.update(session, db=db)

        logger.info(f"Abandoned session {session_id}")
        return session
