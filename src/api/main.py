"""
FastAPI application for EduKid practice.

Provides REST API for:
- Curriculum topics with per-learner mastery
- Adaptive next-question selection
- Answer grading, coin rewards and mastery tracking
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy import func, inspect, select
from sqlalchemy.exc import SQLAlchemyError

from config import get_settings
from src.core.errors import (
    InvalidInputError,
    MasteryConflictError,
    NotFoundError,
    UnauthenticatedError,
)
from src.core.logging_setup import configure_logging
from src.db.database import get_engine, init_db
from src.db.models import TopicQuestion

settings = get_settings()

SERVICE_NAME = "edukid-practice"
VERSION = "0.1.0"


def _probe_catalog() -> tuple[str, int | None, str | None]:
    """
    Round-trip to the database by counting catalog questions.

    Returns:
        (status, question_count, error). Status is "ok" or "error"; a
        database without tables yet reports "ok" with no count.
    """
    try:
        with get_engine().connect() as conn:
            if not inspect(conn).has_table(TopicQuestion.__tablename__):
                return "ok", None, None
            count = conn.scalar(select(func.count()).select_from(TopicQuestion.__table__))
        return "ok", count, None
    except SQLAlchemyError as exc:
        return "error", None, str(exc)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    configure_logging(settings)
    logger.info(f"Starting {SERVICE_NAME} service...")
    init_db()
    logger.info(f"Service started on {settings.api_host}:{settings.api_port}")

    yield

    # Shutdown
    logger.info(f"Shutting down {SERVICE_NAME} service...")


app = FastAPI(
    title="EduKid Practice API",
    description="""
    Adaptive practice service for primary and lower-secondary learners.

    ## Features

    - **Topics**: Curriculum topics filtered by stage and subject, with mastery
    - **Next Question**: Difficulty follows mastery, seen questions are avoided
    - **Answers**: Exact-match grading, coin rewards, mastery updates

    Requests identify the learner with the configured user header.
    """,
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# ========================================
# Error Handlers
# ========================================


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"message": str(exc)})


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": str(exc), "field": exc.field})


@app.exception_handler(RequestValidationError)
async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    field = None
    if errors:
        loc = errors[0].get("loc", ())
        field = str(loc[-1]) if loc else None
    return JSONResponse(status_code=400, content={"message": "Validation error", "field": field})


@app.exception_handler(UnauthenticatedError)
async def unauthenticated_handler(request: Request, exc: UnauthenticatedError) -> JSONResponse:
    return JSONResponse(status_code=401, content={"message": str(exc)})


@app.exception_handler(MasteryConflictError)
async def conflict_handler(request: Request, exc: MasteryConflictError) -> JSONResponse:
    logger.error(f"Mastery update gave up: {exc}")
    return JSONResponse(status_code=409, content={"message": "Please try again"})


# ========================================
# Health & Status Endpoints
# ========================================


@app.get("/", tags=["Health"])
def root() -> dict[str, str]:
    """Root endpoint returning service info."""
    return {
        "service": SERVICE_NAME,
        "version": VERSION,
        "status": "ok",
    }


@app.get("/health", tags=["Health"])
def health_check() -> dict[str, Any]:
    """Health check backed by a real catalog query."""
    db_status, question_count, db_error = _probe_catalog()

    result = {
        "status": "healthy" if db_status == "ok" else "unhealthy",
        "timestamp": datetime.utcnow().isoformat(),
        "components": {"database": db_status},
        "catalog": {"questions": question_count},
        "config": settings.get_engine_config(),
    }
    if db_error:
        result["errors"] = {"database": db_error}

    return result


# ========================================
# Import and mount routers
# ========================================

from src.api.routers import learning_router  # noqa: E402

app.include_router(learning_router.router, prefix="/api", tags=["Learning"])
