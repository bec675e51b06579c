"""FastAPI application wiring for the account service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from psycopg_pool import ConnectionPool

from .api.routes import add_exception_handlers, router as account_router
from .config import Settings, get_settings
from .domain.service import AuthService
from .repository import AccountRepository
from .security.redis_session_store import RedisSessionStore
from .security.session_store import InMemorySessionStore, SessionStore
from .sessions import SessionManager

logger = logging.getLogger(__name__)

settings = get_settings()
logging.getLogger("account_service").setLevel(settings.log_level)


def build_session_store(config: Settings) -> SessionStore:
    """Instantiate the configured session backend, preferring Redis when available."""
    if config.session_backend == "redis" and config.redis_url:
        try:
            import redis

            client = redis.from_url(config.redis_url)
            client.ping()
            logger.info("session store configured for redis backend at %s", config.redis_url)
            return RedisSessionStore(client)
        except redis.RedisError as exc:
            logger.warning("redis session store unavailable, falling back to in-memory: %s", exc)

    logger.info("session store using in-memory backend")
    return InMemorySessionStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise shared resources (Postgres pool, session store, services) for the app lifecycle."""
    pool = ConnectionPool(settings.database_url, open=False)
    pool.open()
    session_manager = SessionManager(
        build_session_store(settings), ttl_seconds=settings.session_ttl_seconds
    )
    app.state.pool = pool
    app.state.session_manager = session_manager
    app.state.auth_service = AuthService(
        AccountRepository(pool),
        session_manager,
        authenticated_redirect=settings.authenticated_redirect,
        anonymous_redirect=settings.anonymous_redirect,
    )
    try:
        yield
    finally:
        pool.close()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)

# CORS for the scheduler front end; cookies carry the session
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["xhttp-redirect"],
    max_age=600,
)


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


app.include_router(account_router)
add_exception_handlers(app)


# Prometheus metrics endpoint for Prometheus scrapes
try:
    from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
except ImportError:  # pragma: no cover - metrics are optional in dev
    pass
