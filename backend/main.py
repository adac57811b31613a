"""FastAPI backend for the AutoContent generation service."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from autocontent import __version__
from autocontent.config import get_settings
from autocontent.seed import seed_all
from backend.errors import register_exception_handlers

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


class HealthResponse(BaseModel):
    status: str
    data_dir: str
    version: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    settings.ensure_dirs()
    if settings.ac_seed_demo_data:
        users, options = seed_all(settings)
        logger.info("Demo data ready (%d new user(s), %d new option(s))", users, options)
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="AutoContent API",
        description="AI content generation with a filtered, cached job queue.",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )
    register_exception_handlers(app)

    # -----------------------------------------------------------------------
    # In-memory sliding-window rate limiter (per IP, mutating routes only)
    # -----------------------------------------------------------------------
    rate_store: dict[str, list[float]] = {}
    app.state.rate_store = rate_store
    window_seconds = settings.rate_limit_window_seconds
    max_requests = settings.rate_limit_max
    next_sweep = [0.0]

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        if request.method in ("GET", "HEAD", "OPTIONS"):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        # Forget clients with no hits inside the window
        if now >= next_sweep[0]:
            for ip in [ip for ip, hits in rate_store.items() if now - hits[-1] >= window_seconds]:
                del rate_store[ip]
            next_sweep[0] = now + window_seconds

        hits = [t for t in rate_store.get(client_ip, ()) if now - t < window_seconds]
        if len(hits) >= max_requests:
            rate_store[client_ip] = hits
            logger.warning("Rate limit exceeded for %s", client_ip)
            return Response(
                content='{"error_code":"RATE_LIMITED","error_message":"Rate limit exceeded. Try again later.","data":null}',
                status_code=429,
                media_type="application/json",
            )
        hits.append(now)
        rate_store[client_ip] = hits
        return await call_next(request)

    # -----------------------------------------------------------------------
    # CORS: added last so it is the outermost middleware and 429 responses
    # still carry CORS headers.
    # -----------------------------------------------------------------------
    cors_kw: dict = {
        "allow_origins": settings.cors_origin_list,
        "allow_credentials": True,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
        "expose_headers": ["Content-Disposition"],
    }
    if settings.cors_origin_regex:
        cors_kw["allow_origin_regex"] = settings.cors_origin_regex
    app.add_middleware(CORSMiddleware, **cors_kw)
    logger.info("CORS configured for origins: %s", settings.cors_origin_list)

    if settings.ac_database_url:
        logger.info("Storage: Postgres")
    else:
        logger.info("Storage: JSON files under %s", settings.data_dir)
    logger.info("Cache: %s", "redis" if settings.ac_redis_url else "in-process memory")

    @app.get("/health", response_model=HealthResponse)
    @app.get("/api/health", response_model=HealthResponse)
    async def health():
        """Health check endpoint."""
        return HealthResponse(status="ok", data_dir=str(settings.data_dir), version=__version__)

    from backend.routes import auth, content, jobs, presets, settings as settings_routes

    app.include_router(auth.router, prefix="/api/v1", tags=["auth"])
    app.include_router(jobs.router, prefix="/api/v1", tags=["jobs"])
    app.include_router(content.router, prefix="/api/v1", tags=["content"])
    app.include_router(settings_routes.router, prefix="/api/v1", tags=["settings"])
    app.include_router(presets.router, prefix="/api/v1", tags=["presets"])
    return app


app = create_app()
