"""FastAPI application for the phasewise JSON API."""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from ..config import Settings, get_settings
from ..db.engine import get_db_path, init_db
from ..errors import PhasewiseError, StateConflict
from ..services import OneRepMaxService, ProgramScheduler, WorkoutSessionService
from .routers import program, schedule, sessions


def create_app(db_path: Path | None = None, settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    db_path = db_path or get_db_path()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler - runs on startup and shutdown."""
        # Startup: Initialize database (idempotent)
        await init_db(db_path)
        yield

    app = FastAPI(
        title="phasewise",
        description="Phased athletic training scheduler",
        version="0.1.0",
        lifespan=lifespan,
    )

    scheduler = ProgramScheduler(db_path, settings)
    app.state.scheduler = scheduler
    app.state.sessions = WorkoutSessionService(db_path, settings, scheduler=scheduler)
    app.state.maxes = OneRepMaxService(db_path)

    app.include_router(program.router)
    app.include_router(schedule.router)
    app.include_router(sessions.router)

    @app.exception_handler(PhasewiseError)
    async def phasewise_error_handler(request: Request, exc: PhasewiseError):
        """Map the error taxonomy onto HTTP status codes."""
        body = {"error": type(exc).__name__, "detail": str(exc)}
        if isinstance(exc, StateConflict):
            body["message"] = exc.user_message
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {body['error']}")
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "version": "0.1.0"}

    return app

