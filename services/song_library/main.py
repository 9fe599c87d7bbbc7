"""Song Library REST API Service"""

import time
from contextlib import asynccontextmanager
from typing import Optional

import asyncpg
import httpx
import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from .config import Settings, get_settings
from .logging_config import configure_logging
from .metadata_client import MetadataApiClient, SongEnricher
from .metrics import REQUEST_COUNT, REQUEST_DURATION
from .migrations import run_migrations
from .models import HealthCheckResponse
from .repository import SongRepository, SongStore
from .routers import songs
from .song_service import SongService

logger = structlog.get_logger(__name__)


def validation_error_message(exc: RequestValidationError) -> str:
    """Client-facing message for a request that failed FastAPI validation"""
    locations = {error.get("loc", ("",))[0] for error in exc.errors()}
    if "path" in locations:
        return "Invalid song ID"
    if "body" in locations:
        return "Invalid request body"
    return "Invalid query parameters"


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[SongStore] = None,
    enricher: Optional[SongEnricher] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    When store and enricher are supplied they are used as-is; otherwise the
    lifespan opens the asyncpg pool and the httpx client and closes them on
    shutdown.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db_pool = None
        http_client = None
        if not hasattr(app.state, "song_service"):
            logger.info("Starting song library service", **settings.safe_summary())
            if settings.run_migrations:
                applied = await run_migrations(settings.database_dsn)
                logger.info("Start-up migrations finished", applied=applied)

            db_pool = await asyncpg.create_pool(
                settings.database_dsn,
                min_size=settings.db_pool_min_size,
                max_size=settings.db_pool_max_size,
                command_timeout=settings.db_command_timeout,
            )
            http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(settings.api_timeout),
                limits=httpx.Limits(max_keepalive_connections=20, max_connections=50),
            )
            app.state.song_service = SongService(
                SongRepository(db_pool),
                MetadataApiClient(settings.api_url, http_client, settings.api_info_path),
            )
            logger.info("Database connection pool and metadata client created")
        try:
            yield
        finally:
            if http_client is not None:
                await http_client.aclose()
            if db_pool is not None:
                await db_pool.close()
                logger.info("Database connection pool closed")

    app = FastAPI(
        title="Song Library API",
        description="Song catalogue with metadata enrichment",
        version=settings.service_version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    if store is not None and enricher is not None:
        app.state.song_service = SongService(store, enricher)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            route = request.scope.get("route")
            endpoint = getattr(route, "path", request.url.path)
            REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(time.perf_counter() - start_time)
            REQUEST_COUNT.labels(method=request.method, endpoint=endpoint, status=status_code).inc()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        message = validation_error_message(exc)
        logger.warning(message, path=request.url.path, errors=str(exc.errors()))
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception",
            method=request.method,
            path=request.url.path,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    app.include_router(songs.router)

    @app.get("/health", response_model=HealthCheckResponse)
    async def health_check(request: Request):
        """Health check endpoint"""
        db_connected = await request.app.state.song_service.store.ping()
        return HealthCheckResponse(
            status="healthy" if db_connected else "degraded",
            database_connected=db_connected,
            service=settings.service_name,
            version=settings.service_version,
        )

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint"""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


def run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
