"""
RCSSA Match - Main Application

FastAPI backend that pairs each student who submits a profile with
another waiting student, preferring the same major.

- MongoDB (default), PostgreSQL or in-memory profile store
- Atomic match commits, bounded retry on lost races
- Status polling endpoint for students still waiting

Run: uvicorn app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.api.routes import api_router
from app.core.config import Settings, get_settings
from app.core.errors import (
    DuplicateProfileError, ProfileNotFoundError, ProfileValidationError, StoreUnavailableError
)
from app.core.logging_config import setup_logging
from app.db import ProfileStore, build_store
from app.schemas.schemas import ErrorResponse, field_errors
from app.services.match_service import MatchService
from app.services.matching_service import MatchingEngine

logger = logging.getLogger(__name__)


def _error(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def create_app(settings: Optional[Settings] = None, store: Optional[ProfileStore] = None) -> FastAPI:
    settings = settings or get_settings()
    store = store or build_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the store handle on startup, close it on shutdown."""
        setup_logging(settings.log_level)
        logger.info("Starting %s with %s backend", settings.app_name, type(store).__name__)
        try:
            store.open()
        except StoreUnavailableError as e:
            # keep serving; the store reconnects on the next request
            logger.warning("Store not reachable at startup: %s", e)

        engine = MatchingEngine(store, max_attempts=settings.match_max_attempts)
        app.state.store = store
        app.state.match_service = MatchService(store, engine)

        yield

        store.close()
        logger.info("Shutting down")

    app = FastAPI(
        title=settings.app_name,
        description="""
        Study-buddy matching for students.

        ## Flow
        - **Submit** a profile: you are paired right away with the oldest waiting
          student of your major, or of any major if none is waiting
        - **Poll** `/api/profiles/{id}/match` while pending; a later submission
          will pick you up
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # CORS middleware (allow all by default)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Include API routes
    app.include_router(api_router, prefix="/api")

    # Exception handlers
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _error(
            status.HTTP_400_BAD_REQUEST,
            ErrorResponse(error="validation_error", fields=field_errors(exc)),
        )

    @app.exception_handler(ProfileValidationError)
    async def profile_validation_handler(request: Request, exc: ProfileValidationError):
        return _error(
            status.HTTP_400_BAD_REQUEST,
            ErrorResponse(error="validation_error", fields=exc.errors),
        )

    @app.exception_handler(DuplicateProfileError)
    async def duplicate_handler(request: Request, exc: DuplicateProfileError):
        logger.info("Duplicate submission rejected: %s", exc)
        return _error(
            status.HTTP_409_CONFLICT,
            ErrorResponse(error="duplicate_profile", detail=str(exc), field=exc.field),
        )

    @app.exception_handler(ProfileNotFoundError)
    async def not_found_handler(request: Request, exc: ProfileNotFoundError):
        return _error(
            status.HTTP_404_NOT_FOUND,
            ErrorResponse(error="not_found", detail=str(exc)),
        )

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
        logger.error("Store unavailable: %s", exc)
        return _error(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            ErrorResponse(error="store_unavailable", detail="Please try again shortly."),
        )

    @app.get("/", tags=["Health"])
    def root():
        return {"status": "ok", "message": f"{settings.app_name} API is running"}

    @app.get("/health", tags=["Health"])
    def health_check(request: Request):
        """Detailed health check."""
        connected = request.app.state.store.health_check()
        return {
            "status": "healthy" if connected else "degraded",
            "backend": type(request.app.state.store).__name__,
            "store": "connected" if connected else "disconnected"
        }

    return app


app = create_app()
