import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from kidpoints.config import Settings, settings as default_settings
from kidpoints.core.exceptions import StorageError
from kidpoints.core.rate_limit import limiter
from kidpoints.core.store import JsonFileStore, KeyValueStore, MemoryStore, RedisStore
from kidpoints.routers import auth, points
from kidpoints.services.credential_service import CredentialStore
from kidpoints.services.points_service import PointsStore
from kidpoints.services.session_service import SessionManager

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Session backend selection
# ---------------------------------------------------------------------------
async def _select_session_backend(app: FastAPI) -> None:
    """Swap the in-memory session store for Redis when configured and reachable."""
    from kidpoints.core.redis_client import get_redis

    app_settings: Settings = app.state.settings
    if app_settings.SESSION_BACKEND != "redis" or app.state.session_store_injected:
        app.state.session_backend = "memory"
        logger.info("Sessions: in-memory storage")
        return

    client = await get_redis(app_settings.REDIS_URL)
    if client is None:
        app.state.session_backend = "memory"
        logger.warning("Sessions: Redis unavailable, using in-memory storage")
        return

    app.state.sessions = SessionManager(RedisStore(client), app_settings.SESSION_MAX_AGE_SECONDS)
    app.state.session_backend = "redis"
    logger.info("Sessions: Redis storage")


# ---------------------------------------------------------------------------
# Lifespan context manager
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan: runs on startup and shutdown."""
    logger.info("%s started", app.state.settings.APP_NAME)
    try:
        await app.state.credentials.load()
    except StorageError:
        logger.exception("Credentials could not be loaded at startup, retrying on first login")
    await app.state.points.ensure_exists()
    await _select_session_backend(app)
    yield
    from kidpoints.core.redis_client import close_redis
    await close_redis()
    logger.info("%s shutting down", app.state.settings.APP_NAME)


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------
def _describe_first_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report schema violations as 400 with the first violation described."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({"detail": _describe_first_error(exc)}),
    )


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
def create_app(
    settings: Settings | None = None,
    data_store: KeyValueStore | None = None,
    session_store: KeyValueStore | None = None,
) -> FastAPI:
    """Build the API.

    ``data_store`` holds the points and credential blobs (JSON files under
    ``DATA_DIR`` by default); ``session_store`` holds sessions (in-memory by
    default, Redis when ``SESSION_BACKEND=redis``).
    """
    settings = settings or default_settings
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
    )

    data_store = data_store or JsonFileStore(settings.DATA_DIR)
    app.state.settings = settings
    app.state.data_store = data_store
    app.state.points = PointsStore(data_store, settings.POINTS_KEY)
    app.state.credentials = CredentialStore(data_store, settings.CREDENTIALS_KEY)
    app.state.session_store_injected = session_store is not None
    app.state.sessions = SessionManager(session_store or MemoryStore(), settings.SESSION_MAX_AGE_SECONDS)
    app.state.session_backend = "memory"

    # -- Middleware -----------------------------------------------------------
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    # -- Errors & rate limiting -------------------------------------------------
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # -- Health check -----------------------------------------------------------
    @app.get("/health", tags=["health"])
    async def health_check():
        """Health check with data store verification."""
        checks: dict[str, str] = {"store": "ok", "sessions": app.state.session_backend}
        try:
            await app.state.data_store.read(settings.POINTS_KEY)
        except StorageError:
            checks["store"] = "error"

        degraded = checks["store"] == "error"
        return {"status": "degraded" if degraded else "ok", "app": settings.APP_NAME, **checks}

    # -- Routers ------------------------------------------------------------------
    app.include_router(auth.router, prefix=settings.API_PREFIX)
    app.include_router(points.router, prefix=settings.API_PREFIX)
    return app


app = create_app()


def run() -> None:
    """Console entry point: serve ``app`` with uvicorn."""
    import uvicorn

    uvicorn.run("kidpoints.main:app", host="0.0.0.0", port=8000)
