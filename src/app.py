"""Main FastAPI application module.

This module builds the FastAPI application: it loads settings, opens the
database once, registers all route handlers, and maps workflow errors to
uniform ``{error, details?}`` JSON responses.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import API_HOST, API_PORT, Settings, load_settings
from core.database import Database
from core.exceptions import InternalError, PlacementEngineError
from core.logging_config import setup_logging
from api.routes import (
    auth,
    contracts,
    dashboard_access,
    invitations,
    notifications,
    verification,
)

logger = logging.getLogger(__name__)

API_TITLE = "Placement Access Engine API"
API_VERSION = "1.0.0"


def register_exception_handlers(app: FastAPI) -> None:
    """Map errors raised by handlers to JSON bodies with the right status."""

    @app.exception_handler(PlacementEngineError)
    def handle_engine_error(request: Request, exc: PlacementEngineError) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "%s %s failed with %s: %s (details=%s)",
            request.method,
            request.url.path,
            exc.code,
            exc.message,
            exc.details,
        )
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))

    @app.exception_handler(RequestValidationError)
    def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("%s %s rejected: invalid request", request.method, request.url.path)
        details = [
            {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "details": details},
        )

    @app.exception_handler(StarletteHTTPException)
    def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(SQLAlchemyError)
    def handle_store_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("%s %s failed in the store", request.method, request.url.path)
        error = InternalError("Internal server error")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Configuration to use; loaded from the environment if omitted.
        database: Database to use; opened from ``settings.database_url`` if omitted.

    Returns:
        The configured FastAPI application.
    """
    settings = settings or load_settings()
    setup_logging(settings.log_level)

    database = database or Database(settings.database_url)
    database.init_db()

    app = FastAPI(
        title=API_TITLE,
        description="Verification, invitation, access gating, contract and notification workflows.",
        version=API_VERSION,
    )
    app.state.settings = settings
    app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(verification.router)
    app.include_router(invitations.router)
    app.include_router(contracts.router)
    app.include_router(notifications.router)
    app.include_router(dashboard_access.router)

    @app.get("/", summary="API root", tags=["Info"])
    def root() -> dict:
        """Return API information and documentation links."""
        return {
            "name": API_TITLE,
            "version": API_VERSION,
            "docs": {"swagger": "/docs", "redoc": "/redoc"},
            "health": "/api/health",
        }

    @app.get("/api/health", summary="Health check", tags=["Health"])
    def health() -> dict:
        return {"status": "ok"}

    return app


# --- Startup code for direct execution ---
if __name__ == "__main__":
    import uvicorn

    server_url = f"http://{API_HOST}:{API_PORT}"
    print(f"Starting {API_TITLE} at {server_url}")
    print(f"API docs: {server_url}/docs")
    uvicorn.run("app:create_app", factory=True, host=API_HOST, port=API_PORT, reload=True)
