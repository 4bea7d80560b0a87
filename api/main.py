"""FastAPI service for Business Finder."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from api.dependencies import ALLOWED_ORIGINS, error_response, get_settings
from api.routers import calls_router, search_router
from business_finder.calls import open_call_history
from business_finder.config import ConfigurationError
from business_finder.firestore import close_firestore_client
from business_finder.logging_config import setup_logging
from business_finder.web import STATIC_DIR

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level)
    app.state.call_history = open_call_history(settings)
    logger.info(
        "Business Finder started (environment=%s, store=%s, search=%s)",
        settings.environment,
        settings.storage_backend,
        "configured" if settings.search_configured else "not_configured",
    )
    try:
        yield
    finally:
        app.state.call_history = None
        close_firestore_client()


app = FastAPI(
    title="Business Finder API",
    version="0.1.0",
    description="Search local service businesses and keep a history of calls.",
    lifespan=lifespan,
)

origins = [origin for origin in ALLOWED_ORIGINS if origin]

if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return error_response(400, "Invalid request body", exc)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("Configuration error on %s %s: %s", request.method, request.url.path, exc)
    return error_response(500, "Server is not configured", exc)


app.include_router(search_router, tags=["search"])
app.include_router(calls_router, tags=["calls"])
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")


@app.get("/", include_in_schema=False)
def index() -> FileResponse:
    return FileResponse(STATIC_DIR / "index.html")


@app.get("/health")
def health_check() -> dict:
    """Health check endpoint with service configuration status."""
    settings = get_settings()
    return {
        "status": "ok",
        "time": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "services": {
            "search": "configured" if settings.search_configured else "not_configured",
            "store": settings.storage_backend,
        },
    }
