"""
app/main.py — CV GraphQL FastAPI Server
=======================================
Read-only GraphQL API over a personal CV: companies, projects, education
and skills. The object graph is built explicitly by create_app():

  settings → CvStore → MemoryCache → QueryServices → GraphQL router

Startup (lifespan):
  1. configure_logging()
  2. ensure_schema(): apply migrations (direct DDL for ":memory:")
  3. Seeder.seed() when seed.enabled; skipped if any table has rows

Routes:
  POST /graphql                  → GraphQL endpoint ({query, variables})
  GET  /graphql                  → GraphiQL IDE
  GET  /health                   → storage reachability (never rate limited)

Cross-cutting:
  - slowapi fixed-window rate limit per client address (HTTP 429)
  - CORS: empty allowed_origins means any origin
  - ProxyHeadersMiddleware for deployments behind a reverse proxy
  - one log line per request; unhandled errors become a generic 500
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from limits import parse as parse_limit
from slowapi import Limiter
from slowapi.util import get_remote_address
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from app.api.schema import GENERIC_ERROR_MESSAGE, build_graphql_router
from app.logging_setup import configure_logging
from app.services.cache import MemoryCache
from app.services.queries import build_query_services
from config_loader import AppSettings, load_settings
from db.migrations import ensure_schema
from db.seeder import Seeder
from db.store import CvStore, StorageUnavailable

log = logging.getLogger("cv.api")

APP_VERSION = "1.0.0"


# ─────────────────────────────────────────────────────────────────────────────
# SHARED HELPERS
# ─────────────────────────────────────────────────────────────────────────────

def err(msg: str, code: int = 400) -> JSONResponse:
    return JSONResponse(
        status_code=code,
        content={"status": "error", "error": {"code": code, "message": msg}},
    )


# ─────────────────────────────────────────────────────────────────────────────
# APP FACTORY
# ─────────────────────────────────────────────────────────────────────────────

def create_app(
    settings: Optional[AppSettings] = None,
    store: Optional[CvStore] = None,
    cache: Optional[MemoryCache] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Validated settings. Defaults to load_settings().
        store:    Storage gateway. Defaults to a CvStore on database.path.
        cache:    Cache instance. Defaults to a fresh MemoryCache.

    Tests pass an in-memory store and a cache with a fake clock.
    """
    if settings is None:
        settings = load_settings()
    if store is None:
        db_path = settings.database.path
        store = CvStore(db_path if db_path == ":memory:" else settings.resolve(db_path))
    if cache is None:
        cache = MemoryCache()

    services = build_query_services(
        store,
        cache,
        caching_enabled=settings.cache.enable_caching,
        expiration_minutes=settings.cache.expiration_minutes,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log_file = settings.logging.file
        configure_logging(settings.logging.level,
                          settings.resolve(log_file) if log_file else None)
        log.info(f"Starting CV GraphQL API v{APP_VERSION} (database: {store.path})")
        ensure_schema(store)
        if settings.seed.enabled:
            Seeder(store, settings.resolve(settings.seed.source_path)).seed()
        yield
        store.close()

    app = FastAPI(
        title="CV GraphQL API",
        description="Read-only GraphQL API for companies, projects, education and skills.",
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.cache = cache
    app.state.queries = services

    # ── rate limiting ────────────────────────────────────────────────────────
    rl = settings.rate_limit
    limiter = Limiter(key_func=get_remote_address, enabled=rl.enable_rate_limiting)
    graphql_limit = parse_limit(f"{rl.permit_limit}/{rl.window} seconds")
    app.state.limiter = limiter

    def enforce_rate_limit(request: Request) -> None:
        # Attached to the GraphQL routes in include_router(); /health is unlimited.
        if not limiter.enabled:
            return
        client = get_remote_address(request)
        if not limiter.limiter.hit(graphql_limit, "graphql", client):
            log.warning(f"Rate limit exceeded for {client} on {request.url.path}")
            raise HTTPException(status_code=429, detail=f"Rate limit exceeded: {graphql_limit}")

    # ── CORS & proxies ───────────────────────────────────────────────────────
    origins = settings.cors.allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=settings.server.trusted_proxies)

    # ── request logging ──────────────────────────────────────────────────────
    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        log.info(f"{request.method} {request.url.path} → {response.status_code} "
                 f"({elapsed_ms:.1f} ms)")
        return response

    # ── error handling ───────────────────────────────────────────────────────
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        log.error(f"Unhandled error on {request.method} {request.url.path}: {exc}",
                  exc_info=exc)
        return err(GENERIC_ERROR_MESSAGE, 500)

    # ── routes ───────────────────────────────────────────────────────────────
    app.include_router(
        build_graphql_router(services),
        prefix="/graphql",
        dependencies=[Depends(enforce_rate_limit)],
    )

    @app.get("/health")
    async def health():
        try:
            store.ping()
        except StorageUnavailable as e:
            log.error(f"Health check failed: {e}")
            return JSONResponse(
                status_code=503,
                content={"status": "Unhealthy", "checks": {"database": "Unhealthy"}},
            )
        return {"status": "Healthy", "checks": {"database": "Healthy"}}

    return app


# Allow `uvicorn app.main:app` as well as the factory
app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = load_settings()
    uvicorn.run(app, host=_settings.server.host, port=_settings.server.port, log_level="info")
