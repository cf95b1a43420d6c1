"""Database engine setup and initialization."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite
from loguru import logger

from ..config import get_settings
from ..errors import TransientPersistenceError


def get_db_path(data_dir: Path | None = None) -> Path:
    """Get the database file path."""
    settings = get_settings()
    if data_dir is None:
        data_dir = settings.data_dir
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / settings.db_filename


@asynccontextmanager
async def connect(db_path: Path | None = None) -> AsyncIterator[aiosqlite.Connection]:
    """Open a read connection with row access by column name."""
    if db_path is None:
        db_path = get_db_path()
    try:
        async with aiosqlite.connect(db_path) as db:
            db.row_factory = aiosqlite.Row
            yield db
    except aiosqlite.OperationalError as e:
        raise TransientPersistenceError(f"Database unavailable: {e}") from e


@asynccontextmanager
async def transaction(db_path: Path | None = None) -> AsyncIterator[aiosqlite.Connection]:
    """Run a block of statements as one write transaction.

    The write lock is taken up front with ``BEGIN IMMEDIATE`` so reads inside
    the block see the state the block commits against. Any exception rolls
    the transaction back; SQLite operational failures (locked or unavailable
    database) surface as ``TransientPersistenceError``.
    """
    if db_path is None:
        db_path = get_db_path()
    try:
        async with aiosqlite.connect(db_path, isolation_level=None) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("BEGIN IMMEDIATE")
            try:
                yield db
            except BaseException:
                await db.execute("ROLLBACK")
                raise
            await db.execute("COMMIT")
    except aiosqlite.OperationalError as e:
        logger.warning(f"Transaction failed on {db_path}: {e}")
        raise TransientPersistenceError(f"Database write failed: {e}") from e


async def init_db(db_path: Path | None = None) -> None:
    """Initialize the database schema."""
    if db_path is None:
        db_path = get_db_path()

    async with aiosqlite.connect(db_path) as db:
        # Canonical template grid (seeded externally, read-only at runtime)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS program_templates (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                category_id INTEGER NOT NULL,
                phase TEXT NOT NULL,
                skill_level TEXT NOT NULL,
                week INTEGER NOT NULL,
                day INTEGER NOT NULL,
                name TEXT NOT NULL,
                description TEXT DEFAULT '',
                estimated_duration_minutes INTEGER DEFAULT 45,
                exercises TEXT NOT NULL DEFAULT '[]',
                UNIQUE (category_id, phase, skill_level, week, day)
            )
        """)

        # One program state per athlete
        await db.execute("""
            CREATE TABLE IF NOT EXISTS program_states (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL UNIQUE,
                category_id INTEGER NOT NULL,
                skill_level TEXT NOT NULL,
                age_group TEXT NOT NULL,
                days_per_week INTEGER NOT NULL,
                weeks_per_phase INTEGER NOT NULL,
                phase TEXT NOT NULL DEFAULT 'GPP',
                week INTEGER NOT NULL DEFAULT 1,
                day INTEGER NOT NULL DEFAULT 1,
                spp_unlocked_at TIMESTAMP,
                ssp_unlocked_at TIMESTAMP,
                reassessment_pending_for_phase TEXT,
                reassessments TEXT DEFAULT '{}',
                status TEXT DEFAULT 'active',
                last_workout_at TIMESTAMP,
                paused_at TIMESTAMP,
                pause_reason TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Per-athlete slot swaps and today's focus
        await db.execute("""
            CREATE TABLE IF NOT EXISTS schedule_overrides (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL UNIQUE,
                slot_swaps TEXT NOT NULL DEFAULT '{}',
                today_focus_template_id INTEGER,
                today_focus_set_at TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS workout_sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                template_id INTEGER NOT NULL,
                user_program_id INTEGER NOT NULL,
                status TEXT NOT NULL DEFAULT 'in_progress',
                exercises TEXT NOT NULL DEFAULT '[]',
                exercise_order TEXT,
                target_intensity TEXT,
                prescriptions TEXT DEFAULT '[]',
                template_snapshot TEXT DEFAULT '{}',
                started_at TIMESTAMP,
                completed_at TIMESTAMP,
                total_duration_seconds INTEGER,
                FOREIGN KEY (template_id) REFERENCES program_templates(id),
                FOREIGN KEY (user_program_id) REFERENCES program_states(id)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS phase_reassessments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                phase TEXT NOT NULL,
                difficulty TEXT NOT NULL,
                completion_rate REAL NOT NULL,
                skill_level_before TEXT NOT NULL,
                skill_level_after TEXT NOT NULL,
                notes TEXT DEFAULT '',
                completed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Latest one-rep max per athlete and exercise
        await db.execute("""
            CREATE TABLE IF NOT EXISTS user_maxes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                exercise_id TEXT NOT NULL,
                one_rep_max REAL NOT NULL,
                source TEXT NOT NULL DEFAULT 'user_input',
                notes TEXT DEFAULT '',
                recorded_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (user_id, exercise_id)
            )
        """)

        # Create indexes for common queries
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_templates_grid
            ON program_templates(category_id, skill_level, phase)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_sessions_user_status
            ON workout_sessions(user_id, status)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_sessions_user_template
            ON workout_sessions(user_id, template_id)
        """)
        # At most one in-progress session per (user, template)
        await db.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_sessions_one_in_progress
            ON workout_sessions(user_id, template_id)
            WHERE status = 'in_progress'
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_reassessments_user
            ON phase_reassessments(user_id)
        """)

        await db.commit()

    logger.info(f"Database initialized at {db_path}")
