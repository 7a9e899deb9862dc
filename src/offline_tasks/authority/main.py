from __future__ import annotations

import logging
import random
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..settings import Settings, get_settings
from .routers import tasks as tasks_router
from .store import TaskAuthorityStore, demo_tasks

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "tasks",
        "description": "Create, replace, delete and list tasks with client-assigned ids and timestamps.",
    },
]


# PUBLIC_INTERFACE
def create_app(
    store: Optional[TaskAuthorityStore] = None,
    settings: Optional[Settings] = None,
    failure_rate: Optional[float] = None,
    rng: Optional[random.Random] = None,
) -> FastAPI:
    """
    Build the task authority application.

    Args:
        store: Task table to serve; a fresh one (seeded when AUTHORITY_SEED_DEMO is set) by default.
        settings: Settings to read CORS and failure injection from.
        failure_rate: Share of task requests answered with 503; overrides settings.
        rng: Random source for failure injection.
    """
    settings = settings or get_settings()
    if store is None:
        store = TaskAuthorityStore(demo_tasks() if settings.authority_seed_demo else None)
    rate = settings.authority_failure_rate if failure_rate is None else failure_rate
    chooser = rng or random.Random()

    app = FastAPI(
        title="Task Authority",
        description="Remote authority for offline-first task clients.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )
    app.state.store = store
    app.state.failure_rate = rate

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def inject_failures(request: Request, call_next):
        """
        Answer a random share of task requests with 503 to exercise client retries.
        """
        failure_rate = request.app.state.failure_rate
        if (
            failure_rate > 0
            and request.url.path.startswith(tasks_router.router.prefix)
            and chooser.random() < failure_rate
        ):
            logger.info("Injected failure for %s %s", request.method, request.url.path)
            return JSONResponse(
                status_code=503,
                content={"error": "ServiceUnavailable", "message": "Simulated network error"},
            )
        return await call_next(request)

    # Global exception handlers for consistent JSON on validation errors
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format:
            {
                "error": "ValidationError",
                "detail": [... pydantic/fastapi error details ...],
                "message": "Request validation failed"
            }
        """
        return JSONResponse(
            status_code=422,
            content={
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": jsonable_errors(exc),
            },
        )

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint, also used by clients as a reachability probe.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "tasks": len(store.list())}

    app.include_router(tasks_router.router)
    return app


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation error details with any non-JSON context values stringified."""
    return jsonable_encoder(exc.errors(), custom_encoder={Exception: str})


app = create_app()
