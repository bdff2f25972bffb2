"""
Investigation API Server
========================

FastAPI application with WebSocket support for real-time updates.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import investigations
from core.config import Settings, get_settings
from core.logging import configure_root_logger, get_logger
from infra.realtime import ConnectionHub, RealtimeChannel
from orchestration.session import InvestigationSession

logger = get_logger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Lifespan context manager for startup and shutdown events.

    The session controller is built with the app; shutdown tears down its
    current investigation and closes live subscribers.
    """
    configure_root_logger(app.state.settings.log_level)
    logger.info("Starting investigation API server...", env=app.state.settings.app_env)

    yield

    logger.info("Shutting down investigation API server...")
    app.state.session.close()
    app.state.hub.clear()


def create_app(
    settings: Optional[Settings] = None,
    session: Optional[InvestigationSession] = None,
    hub: Optional[ConnectionHub] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Application settings (defaults to environment)
        session: Session controller; built from settings when omitted
        hub: WebSocket hub shared by the session's realtime channels
    """
    settings = settings or get_settings()
    hub = hub or ConnectionHub()
    if session is None:
        session = InvestigationSession(
            settings=settings,
            channel_factory=lambda: RealtimeChannel(hub=hub, settings=settings),
        )

    app = FastAPI(
        title="OSINT Forensics API",
        description="Sequential OSINT and media forensics investigation API",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.hub = hub
    app.state.session = session

    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=settings.cors_origin_regex,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        response = await call_next(request)
        logger.info(
            "Request handled",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            origin=request.headers.get("origin"),
        )
        return response

    app.include_router(investigations.router)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Global exception handler to ensure no error is ignored.
        Logs the error fully and returns a standardized 500 response.
        """
        logger.error("Unhandled exception", exc_info=True, path=request.url.path, error=str(exc))
        return JSONResponse(
            status_code=500,
            content={"detail": "An internal server error occurred.", "message": str(exc)},
        )

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "OSINT Forensics API",
            "version": API_VERSION,
            "status": "running",
            "docs": "/docs",
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
