"""
Growth Engine: API Server
=========================

HTTP surface over a GrowthBackend.

Endpoints:
- GET  /health
- GET  /progression/events?userId=&sinceUtc=   -> ordered event list
- GET  /growth/state?userId=                   -> GrowthState or 404
- POST /triggers/tasks/{task_id}               -> task write notification
- POST /triggers/reflections/{reflection_id}   -> reflection create notification
- POST /triggers/accounts/{user_id}            -> account bootstrap
- POST /reflections                            -> client reflection submission
- POST /insights/weekly                        -> read-only weekly insight
- POST /reconcile/{user_id}                    -> replay unapplied growth

The backend is injected through create_app(); the module-level `app` builds
one from the environment at startup.

Usage:
    uvicorn growth_engine.api.server:app --reload
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from ..config import EngineConfig
from ..contracts.base import Timestamp, generate_reflection_id
from ..engine import GrowthBackend
from .mapper import (
    TaskWriteRequest, ReflectionModel, SubmitReflectionRequest, WeeklyInsightRequest,
    map_task_write, map_reflection, map_outcome_to_dto, map_report_to_dto
)

logger = logging.getLogger(__name__)


def get_backend(request: Request) -> GrowthBackend:
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        raise HTTPException(status_code=503, detail="Backend not initialized")
    return backend


def create_app(backend: Optional[GrowthBackend] = None) -> FastAPI:
    """
    Build the API around an explicit backend.

    With no backend, one is constructed from EngineConfig.from_env() when
    the app starts and released when it stops.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_backend = backend is None
        if owns_backend:
            config = EngineConfig.from_env()
            logger.info(
                f"Initializing growth backend "
                f"({config.storage.backend_type}, dir={config.storage.storage_dir})"
            )
            app.state.backend = GrowthBackend(config)
        yield
        if owns_backend:
            logger.info("Shutting down growth backend")
            app.state.backend = None

    app = FastAPI(
        title="Growth Engine API",
        version="0.1.0",
        description="Authoritative growth state and progression event stream",
        lifespan=lifespan
    )
    app.state.backend = backend

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # =========================================================================
    # READ ENDPOINTS
    # =========================================================================

    @app.get("/health")
    def health_check(request: Request):
        """System status."""
        get_backend(request)
        return {"status": "online"}

    @app.get("/progression/events")
    def list_events(
        request: Request,
        userId: str = Query(..., min_length=1),
        sinceUtc: Optional[str] = None
    ):
        """
        Events for one user with occurredAt >= sinceUtc, oldest first.
        """
        since = None
        if sinceUtc:
            since = Timestamp.parse_optional(sinceUtc)
            if since is None:
                raise HTTPException(status_code=422, detail="sinceUtc is not an ISO-8601 timestamp")

        events = get_backend(request).list_events(userId, since)
        return [event.to_dict() for event in events]

    @app.get("/growth/state")
    def get_growth_state(request: Request, userId: str = Query(..., min_length=1)):
        state = get_backend(request).get_growth_state(userId)
        if state is None:
            raise HTTPException(status_code=404, detail=f"No growth state for {userId}")
        return state.to_dict()

    # =========================================================================
    # TRIGGER INGRESS
    # =========================================================================

    @app.post("/triggers/tasks/{task_id}")
    def task_written(task_id: str, body: TaskWriteRequest, request: Request):
        outcome = get_backend(request).on_task_written(task_id, map_task_write(task_id, body))
        return map_outcome_to_dto(outcome)

    @app.post("/triggers/reflections/{reflection_id}")
    def reflection_created(reflection_id: str, body: ReflectionModel, request: Request):
        outcome = get_backend(request).on_reflection_created(
            reflection_id, map_reflection(reflection_id, body)
        )
        return map_outcome_to_dto(outcome)

    @app.post("/triggers/accounts/{user_id}")
    def account_created(user_id: str, request: Request):
        return map_outcome_to_dto(get_backend(request).on_account_created(user_id))

    # =========================================================================
    # CLIENT WRITES
    # =========================================================================

    @app.post("/reflections", status_code=201)
    def submit_reflection(body: SubmitReflectionRequest, request: Request):
        """Store a reflection on the user's behalf and fire its trigger."""
        if not body.text.strip():
            raise HTTPException(status_code=422, detail="Reflection text is empty")

        reflection_id = generate_reflection_id()
        outcome = get_backend(request).on_reflection_created(
            reflection_id, map_reflection(reflection_id, body)
        )
        dto = map_outcome_to_dto(outcome)
        dto["reflectionId"] = reflection_id
        return dto

    @app.post("/insights/weekly")
    def weekly_insight(body: WeeklyInsightRequest, request: Request):
        """Read-only summary of the user's progression in [fromUtc, toUtc]."""
        from_at = Timestamp.parse_optional(body.fromUtc)
        to_at = Timestamp.parse_optional(body.toUtc)
        if from_at is None or to_at is None:
            raise HTTPException(status_code=422, detail="fromUtc and toUtc must be ISO-8601 timestamps")
        if to_at < from_at:
            raise HTTPException(status_code=422, detail="toUtc is before fromUtc")

        return get_backend(request).weekly_insight(body.userId, from_at, to_at).to_dict()

    @app.post("/reconcile/{user_id}")
    def reconcile(user_id: str, request: Request):
        return map_report_to_dto(get_backend(request).reconcile_user(user_id))

    return app


app = create_app()
