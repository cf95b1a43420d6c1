"""Data access layer for phasewise.

Every method accepts an optional open connection. Services pass the
connection of an enclosing ``transaction`` so multi-step mutations commit
atomically; when omitted, the method opens its own connection.
"""

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

import aiosqlite

from ..errors import AlreadyInProgress
from ..models.one_rep_max import OneRepMax
from ..models.program_state import ProgramState, ReassessmentRecord
from ..models.schedule import ScheduleOverride
from ..models.session import SessionStatus, WorkoutSession
from ..models.template import WorkoutTemplate
from ..models.training import Phase, SkillLevel
from .engine import connect, get_db_path, transaction


class _Repository:
    """Connection handling shared by the repositories."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    @asynccontextmanager
    async def _reading(
        self, db: aiosqlite.Connection | None
    ) -> AsyncIterator[aiosqlite.Connection]:
        if db is not None:
            yield db
            return
        async with connect(self.db_path) as conn:
            yield conn

    @asynccontextmanager
    async def _writing(
        self, db: aiosqlite.Connection | None
    ) -> AsyncIterator[aiosqlite.Connection]:
        if db is not None:
            yield db
            return
        async with transaction(self.db_path) as conn:
            yield conn


class TemplateRepository(_Repository):
    """Repository for the canonical workout template grid."""

    async def upsert(
        self, template: WorkoutTemplate, db: aiosqlite.Connection | None = None
    ) -> int:
        """Insert a template, replacing the one at the same grid key."""
        data = template.to_dict()
        async with self._writing(db) as conn:
            await conn.execute(
                """
                INSERT INTO program_templates
                (category_id, phase, skill_level, week, day, name, description,
                 estimated_duration_minutes, exercises)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (category_id, phase, skill_level, week, day) DO UPDATE SET
                    name = excluded.name,
                    description = excluded.description,
                    estimated_duration_minutes = excluded.estimated_duration_minutes,
                    exercises = excluded.exercises
                """,
                (
                    data["category_id"],
                    data["phase"],
                    data["skill_level"],
                    data["week"],
                    data["day"],
                    data["name"],
                    data["description"],
                    data["estimated_duration_minutes"],
                    json.dumps(data["exercises"]),
                ),
            )
            cursor = await conn.execute(
                """
                SELECT id FROM program_templates
                WHERE category_id = ? AND phase = ? AND skill_level = ?
                  AND week = ? AND day = ?
                """,
                (data["category_id"], data["phase"], data["skill_level"], data["week"], data["day"]),
            )
            row = await cursor.fetchone()
            template.id = row["id"]
            return template.id

    async def get(
        self, template_id: int, db: aiosqlite.Connection | None = None
    ) -> WorkoutTemplate | None:
        """Get a template by ID."""
        async with self._reading(db) as conn:
            cursor = await conn.execute(
                "SELECT * FROM program_templates WHERE id = ?", (template_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_template(row)

    async def get_many(
        self, template_ids: list[int], db: aiosqlite.Connection | None = None
    ) -> dict[int, WorkoutTemplate]:
        """Get several templates keyed by ID."""
        if not template_ids:
            return {}
        placeholders = ", ".join("?" for _ in template_ids)
        async with self._reading(db) as conn:
            cursor = await conn.execute(
                f"SELECT * FROM program_templates WHERE id IN ({placeholders})",
                tuple(template_ids),
            )
            rows = await cursor.fetchall()
            return {row["id"]: self._row_to_template(row) for row in rows}

    async def get_phase_grid(
        self,
        category_id: int,
        skill_level: SkillLevel,
        phase: Phase,
        db: aiosqlite.Connection | None = None,
    ) -> dict[tuple[int, int], WorkoutTemplate]:
        """Get the canonical templates of one phase keyed by ``(week, day)``."""
        async with self._reading(db) as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM program_templates
                WHERE category_id = ? AND skill_level = ? AND phase = ?
                ORDER BY week, day
                """,
                (category_id, skill_level.value, phase.value),
            )
            rows = await cursor.fetchall()
            templates = [self._row_to_template(row) for row in rows]
            return {(t.week, t.day): t for t in templates}

    async def list_all(
        self,
        category_id: int | None = None,
        db: aiosqlite.Connection | None = None,
    ) -> list[WorkoutTemplate]:
        """List templates, optionally restricted to one sport category."""
        async with self._reading(db) as conn:
            if category_id is not None:
                cursor = await conn.execute(
                    """
                    SELECT * FROM program_templates WHERE category_id = ?
                    ORDER BY skill_level, phase, week, day
                    """,
                    (category_id,),
                )
            else:
                cursor = await conn.execute(
                    """
                    SELECT * FROM program_templates
                    ORDER BY category_id, skill_level, phase, week, day
                    """
                )
            rows = await cursor.fetchall()
            return [self._row_to_template(row) for row in rows]

    def _row_to_template(self, row: aiosqlite.Row) -> WorkoutTemplate:
        """Convert a database row to a WorkoutTemplate."""
        data = {
            "category_id": row["category_id"],
            "phase": row["phase"],
            "skill_level": row["skill_level"],
            "week": row["week"],
            "day": row["day"],
            "name": row["name"],
            "description": row["description"] or "",
            "estimated_duration_minutes": row["estimated_duration_minutes"],
            "exercises": json.loads(row["exercises"]),
        }
        return WorkoutTemplate.from_dict(data, id=row["id"])


class ProgramStateRepository(_Repository):
    """Repository for per-athlete program state."""

    async def create(
        self, state: ProgramState, db: aiosqlite.Connection | None = None
    ) -> int:
        """Create the program state for an athlete."""
        data = state.to_dict()
        async with self._writing(db) as conn:
            cursor = await conn.execute(
                """
                INSERT INTO program_states
                (user_id, category_id, skill_level, age_group, days_per_week,
                 weeks_per_phase, phase, week, day, reassessments, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["user_id"],
                    data["category_id"],
                    data["skill_level"],
                    data["age_group"],
                    data["days_per_week"],
                    data["weeks_per_phase"],
                    data["phase"],
                    data["week"],
                    data["day"],
                    json.dumps(data["reassessments"]),
                    data["status"],
                    data["created_at"] or datetime.now().isoformat(),
                ),
            )
            state.id = cursor.lastrowid
            return state.id

    async def get_by_user(
        self, user_id: str, db: aiosqlite.Connection | None = None
    ) -> ProgramState | None:
        """Get the program state for an athlete."""
        async with self._reading(db) as conn:
            cursor = await conn.execute(
                "SELECT * FROM program_states WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_state(row)

    async def update(
        self, state: ProgramState, db: aiosqlite.Connection | None = None
    ) -> None:
        """Persist every mutable field of a program state."""
        if state.id is None:
            raise ValueError("Program state must have an ID to update")

        data = state.to_dict()
        async with self._writing(db) as conn:
            await conn.execute(
                """
                UPDATE program_states SET
                    skill_level = ?, age_group = ?, phase = ?, week = ?, day = ?,
                    spp_unlocked_at = ?, ssp_unlocked_at = ?,
                    reassessment_pending_for_phase = ?, reassessments = ?,
                    status = ?, last_workout_at = ?, paused_at = ?, pause_reason = ?
                WHERE id = ?
                """,
                (
                    data["skill_level"],
                    data["age_group"],
                    data["phase"],
                    data["week"],
                    data["day"],
                    data["spp_unlocked_at"],
                    data["ssp_unlocked_at"],
                    data["reassessment_pending_for_phase"],
                    json.dumps(data["reassessments"]),
                    data["status"],
                    data["last_workout_at"],
                    data["paused_at"],
                    data["pause_reason"],
                    state.id,
                ),
            )

    async def delete_by_user(
        self, user_id: str, db: aiosqlite.Connection | None = None
    ) -> bool:
        """Delete an athlete's program state. Returns True if one existed."""
        async with self._writing(db) as conn:
            cursor = await conn.execute(
                "DELETE FROM program_states WHERE user_id = ?", (user_id,)
            )
            return cursor.rowcount > 0

    def _row_to_state(self, row: aiosqlite.Row) -> ProgramState:
        """Convert a database row to a ProgramState."""
        data = dict(row)
        data["reassessments"] = json.loads(row["reassessments"] or "{}")
        return ProgramState.from_dict(data, id=row["id"])


class ScheduleOverrideRepository(_Repository):
    """Repository for per-athlete schedule overrides."""

    async def get_by_user(
        self, user_id: str, db: aiosqlite.Connection | None = None
    ) -> ScheduleOverride | None:
        """Get the override record for an athlete, if one was ever created."""
        async with self._reading(db) as conn:
            cursor = await conn.execute(
                "SELECT * FROM schedule_overrides WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_override(row)

    async def get_or_empty(
        self, user_id: str, db: aiosqlite.Connection | None = None
    ) -> ScheduleOverride:
        """Get the override record, or an unsaved empty one."""
        override = await self.get_by_user(user_id, db=db)
        return override or ScheduleOverride(user_id=user_id)

    async def save(
        self, override: ScheduleOverride, db: aiosqlite.Connection | None = None
    ) -> int:
        """Insert or update the override record (created lazily)."""
        data = override.to_dict()
        async with self._writing(db) as conn:
            await conn.execute(
                """
                INSERT INTO schedule_overrides
                (user_id, slot_swaps, today_focus_template_id, today_focus_set_at, updated_at)
                VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT (user_id) DO UPDATE SET
                    slot_swaps = excluded.slot_swaps,
                    today_focus_template_id = excluded.today_focus_template_id,
                    today_focus_set_at = excluded.today_focus_set_at,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (
                    data["user_id"],
                    json.dumps(data["slot_swaps"]),
                    data["today_focus_template_id"],
                    data["today_focus_set_at"],
                ),
            )
            cursor = await conn.execute(
                "SELECT id FROM schedule_overrides WHERE user_id = ?", (override.user_id,)
            )
            row = await cursor.fetchone()
            override.id = row["id"]
            return override.id

    def _row_to_override(self, row: aiosqlite.Row) -> ScheduleOverride:
        """Convert a database row to a ScheduleOverride."""
        data = {
            "user_id": row["user_id"],
            "slot_swaps": json.loads(row["slot_swaps"] or "{}"),
            "today_focus_template_id": row["today_focus_template_id"],
            "today_focus_set_at": row["today_focus_set_at"],
        }
        return ScheduleOverride.from_dict(data, id=row["id"])


class WorkoutSessionRepository(_Repository):
    """Repository for workout sessions."""

    async def create(
        self, session: WorkoutSession, db: aiosqlite.Connection | None = None
    ) -> int:
        """Create a session.

        Raises:
            AlreadyInProgress: another in-progress session exists for the
                same athlete and template.
        """
        data = session.to_dict()
        async with self._writing(db) as conn:
            try:
                cursor = await conn.execute(
                    """
                    INSERT INTO workout_sessions
                    (user_id, template_id, user_program_id, status, exercises,
                     exercise_order, target_intensity, prescriptions, template_snapshot,
                     started_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        data["user_id"],
                        data["template_id"],
                        data["user_program_id"],
                        data["status"],
                        json.dumps(data["exercises"]),
                        json.dumps(data["exercise_order"])
                        if data["exercise_order"] is not None
                        else None,
                        data["target_intensity"],
                        json.dumps(data["prescriptions"]),
                        json.dumps(data["template_snapshot"]),
                        data["started_at"],
                    ),
                )
            except aiosqlite.IntegrityError as e:
                raise AlreadyInProgress(
                    f"Template {session.template_id} already has a session in progress"
                ) from e
            session.id = cursor.lastrowid
            return session.id

    async def get(
        self, session_id: int, db: aiosqlite.Connection | None = None
    ) -> WorkoutSession | None:
        """Get a session by ID."""
        async with self._reading(db) as conn:
            cursor = await conn.execute(
                "SELECT * FROM workout_sessions WHERE id = ?", (session_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_session(row)

    async def get_current(
        self, user_id: str, db: aiosqlite.Connection | None = None
    ) -> WorkoutSession | None:
        """Get the athlete's most recently started in-progress session."""
        async with self._reading(db) as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM workout_sessions
                WHERE user_id = ? AND status = ?
                ORDER BY started_at DESC, id DESC LIMIT 1
                """,
                (user_id, SessionStatus.IN_PROGRESS.value),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_session(row)

    async def get_latest_for_template(
        self,
        user_id: str,
        template_id: int,
        status: SessionStatus | None = None,
        db: aiosqlite.Connection | None = None,
    ) -> WorkoutSession | None:
        """Get the most recent session for a template, optionally by status."""
        query = "SELECT * FROM workout_sessions WHERE user_id = ? AND template_id = ?"
        params: list = [user_id, template_id]
        if status is not None:
            query += " AND status = ?"
            params.append(status.value)
        query += " ORDER BY started_at DESC, id DESC LIMIT 1"

        async with self._reading(db) as conn:
            cursor = await conn.execute(query, tuple(params))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_session(row)

    async def get_completed_template_ids(
        self, user_id: str, db: aiosqlite.Connection | None = None
    ) -> set[int]:
        """Get the IDs of every template the athlete has completed."""
        async with self._reading(db) as conn:
            cursor = await conn.execute(
                """
                SELECT DISTINCT template_id FROM workout_sessions
                WHERE user_id = ? AND status = ?
                """,
                (user_id, SessionStatus.COMPLETED.value),
            )
            rows = await cursor.fetchall()
            return {row["template_id"] for row in rows}

    async def count_completed_in_phase(
        self,
        user_id: str,
        phase: Phase,
        db: aiosqlite.Connection | None = None,
    ) -> int:
        """Count distinct completed templates belonging to a phase."""
        async with self._reading(db) as conn:
            cursor = await conn.execute(
                """
                SELECT COUNT(DISTINCT s.template_id) AS completed
                FROM workout_sessions s
                JOIN program_templates t ON t.id = s.template_id
                WHERE s.user_id = ? AND s.status = ? AND t.phase = ?
                """,
                (user_id, SessionStatus.COMPLETED.value, phase.value),
            )
            row = await cursor.fetchone()
            return row["completed"] if row else 0

    async def list_history(
        self,
        user_id: str,
        limit: int = 20,
        status: SessionStatus | None = SessionStatus.COMPLETED,
        db: aiosqlite.Connection | None = None,
    ) -> list[WorkoutSession]:
        """List the athlete's sessions, newest first."""
        query = "SELECT * FROM workout_sessions WHERE user_id = ?"
        params: list = [user_id]
        if status is not None:
            query += " AND status = ?"
            params.append(status.value)
        query += " ORDER BY COALESCE(completed_at, started_at) DESC, id DESC LIMIT ?"
        params.append(limit)

        async with self._reading(db) as conn:
            cursor = await conn.execute(query, tuple(params))
            rows = await cursor.fetchall()
            return [self._row_to_session(row) for row in rows]

    async def update(
        self, session: WorkoutSession, db: aiosqlite.Connection | None = None
    ) -> None:
        """Persist a session's progress and status."""
        if session.id is None:
            raise ValueError("Session must have an ID to update")

        data = session.to_dict()
        async with self._writing(db) as conn:
            await conn.execute(
                """
                UPDATE workout_sessions SET
                    status = ?, exercises = ?, exercise_order = ?,
                    completed_at = ?, total_duration_seconds = ?
                WHERE id = ?
                """,
                (
                    data["status"],
                    json.dumps(data["exercises"]),
                    json.dumps(data["exercise_order"])
                    if data["exercise_order"] is not None
                    else None,
                    data["completed_at"],
                    data["total_duration_seconds"],
                    session.id,
                ),
            )

    async def delete_by_user(
        self, user_id: str, db: aiosqlite.Connection | None = None
    ) -> int:
        """Delete every session of an athlete; returns how many were removed."""
        async with self._writing(db) as conn:
            cursor = await conn.execute(
                "DELETE FROM workout_sessions WHERE user_id = ?", (user_id,)
            )
            return cursor.rowcount

    def _row_to_session(self, row: aiosqlite.Row) -> WorkoutSession:
        """Convert a database row to a WorkoutSession."""
        data = {
            "user_id": row["user_id"],
            "template_id": row["template_id"],
            "user_program_id": row["user_program_id"],
            "status": row["status"],
            "exercises": json.loads(row["exercises"]),
            "exercise_order": (
                json.loads(row["exercise_order"]) if row["exercise_order"] else None
            ),
            "target_intensity": row["target_intensity"],
            "prescriptions": json.loads(row["prescriptions"] or "[]"),
            "template_snapshot": json.loads(row["template_snapshot"] or "{}"),
            "started_at": row["started_at"],
            "completed_at": row["completed_at"],
            "total_duration_seconds": row["total_duration_seconds"],
        }
        return WorkoutSession.from_dict(data, id=row["id"])


class ReassessmentRepository(_Repository):
    """Repository for completed phase reassessments."""

    async def create(
        self, record: ReassessmentRecord, db: aiosqlite.Connection | None = None
    ) -> int:
        data = record.to_dict()
        async with self._writing(db) as conn:
            cursor = await conn.execute(
                """
                INSERT INTO phase_reassessments
                (user_id, phase, difficulty, completion_rate, skill_level_before,
                 skill_level_after, notes, completed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["user_id"],
                    data["phase"],
                    data["difficulty"],
                    data["completion_rate"],
                    data["skill_level_before"],
                    data["skill_level_after"],
                    data["notes"],
                    data["completed_at"] or datetime.now().isoformat(),
                ),
            )
            record.id = cursor.lastrowid
            return record.id

    async def list_by_user(
        self, user_id: str, db: aiosqlite.Connection | None = None
    ) -> list[ReassessmentRecord]:
        async with self._reading(db) as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM phase_reassessments WHERE user_id = ?
                ORDER BY completed_at, id
                """,
                (user_id,),
            )
            rows = await cursor.fetchall()
            return [ReassessmentRecord.from_dict(dict(row), id=row["id"]) for row in rows]

    async def delete_by_user(
        self, user_id: str, db: aiosqlite.Connection | None = None
    ) -> int:
        async with self._writing(db) as conn:
            cursor = await conn.execute(
                "DELETE FROM phase_reassessments WHERE user_id = ?", (user_id,)
            )
            return cursor.rowcount


class UserMaxRepository(_Repository):
    """Repository for athletes' one-rep maxes (one row per exercise)."""

    async def upsert(
        self, record: OneRepMax, db: aiosqlite.Connection | None = None
    ) -> int:
        """Insert a max, replacing the athlete's previous max for the exercise."""
        data = record.to_dict()
        async with self._writing(db) as conn:
            await conn.execute(
                """
                INSERT INTO user_maxes
                (user_id, exercise_id, one_rep_max, source, notes, recorded_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT (user_id, exercise_id) DO UPDATE SET
                    one_rep_max = excluded.one_rep_max,
                    source = excluded.source,
                    notes = excluded.notes,
                    recorded_at = excluded.recorded_at
                """,
                (
                    data["user_id"],
                    data["exercise_id"],
                    data["one_rep_max"],
                    data["source"],
                    data["notes"],
                    data["recorded_at"] or datetime.now().isoformat(),
                ),
            )
            cursor = await conn.execute(
                "SELECT id FROM user_maxes WHERE user_id = ? AND exercise_id = ?",
                (record.user_id, record.exercise_id),
            )
            row = await cursor.fetchone()
            record.id = row["id"]
            return record.id

    async def get(
        self, user_id: str, exercise_id: str, db: aiosqlite.Connection | None = None
    ) -> OneRepMax | None:
        async with self._reading(db) as conn:
            cursor = await conn.execute(
                "SELECT * FROM user_maxes WHERE user_id = ? AND exercise_id = ?",
                (user_id, exercise_id),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return OneRepMax.from_dict(dict(row), id=row["id"])

    async def get_for_exercises(
        self,
        user_id: str,
        exercise_ids: list[str],
        db: aiosqlite.Connection | None = None,
    ) -> dict[str, float]:
        """Map exercise ID -> one-rep max for the exercises that have one."""
        if not exercise_ids:
            return {}
        placeholders = ",".join("?" for _ in exercise_ids)
        async with self._reading(db) as conn:
            cursor = await conn.execute(
                f"""
                SELECT exercise_id, one_rep_max FROM user_maxes
                WHERE user_id = ? AND exercise_id IN ({placeholders})
                """,
                (user_id, *exercise_ids),
            )
            rows = await cursor.fetchall()
            return {row["exercise_id"]: row["one_rep_max"] for row in rows}

    async def list_by_user(
        self, user_id: str, db: aiosqlite.Connection | None = None
    ) -> list[OneRepMax]:
        async with self._reading(db) as conn:
            cursor = await conn.execute(
                "SELECT * FROM user_maxes WHERE user_id = ? ORDER BY exercise_id",
                (user_id,),
            )
            rows = await cursor.fetchall()
            return [OneRepMax.from_dict(dict(row), id=row["id"]) for row in rows]

    async def delete(
        self, user_id: str, exercise_id: str, db: aiosqlite.Connection | None = None
    ) -> bool:
        async with self._writing(db) as conn:
            cursor = await conn.execute(
                "DELETE FROM user_maxes WHERE user_id = ? AND exercise_id = ?",
                (user_id, exercise_id),
            )
            return cursor.rowcount > 0
