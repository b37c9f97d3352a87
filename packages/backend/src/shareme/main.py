"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. It is also where the long-lived security objects are built,
exactly once per process:

- TokenEngine: holds the signing key; shared read-only by every request
- reset notifier: delivers password reset tokens
- document storage: where uploaded files go

They are attached to app.state and reached through dependencies, never
through module globals. Lifespan manages startup/shutdown (database).
"""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shareme import __version__
from shareme.api import api_router
from shareme.auth.jwt import TokenEngine, utcnow
from shareme.config import Settings, settings as default_settings
from shareme.errors import install_error_handlers
from shareme.middleware.request_id import RequestIdMiddleware
from shareme.middleware.security import SecurityHeadersMiddleware
from shareme.services.notifier import ResetNotifier, build_notifier
from shareme.services.storage import DocumentStorage

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    cfg: Settings = app.state.settings
    logger.info(
        "shareme.starting",
        version=__version__,
        environment=cfg.environment,
        port=cfg.port,
    )

    from shareme.db.engine import create_all, engine

    if cfg.auto_create_tables:
        await create_all()
        logger.info("shareme.tables_created")

    yield

    logger.info("shareme.shutdown")
    await engine.dispose()


def create_app(
    settings: Optional[Settings] = None,
    *,
    clock: Callable[[], datetime] = utcnow,
    reset_notifier: Optional[ResetNotifier] = None,
    storage: Optional[DocumentStorage] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    cfg = settings or default_settings

    app = FastAPI(
        title="ShareMe API",
        description="Projects, tasks and personal notes with owner/member access control",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = cfg
    app.state.clock = clock
    app.state.token_engine = TokenEngine(
        secret=cfg.jwt_secret,
        algorithm=cfg.jwt_algorithm,
        ttl=timedelta(minutes=cfg.access_token_expire_minutes),
        clock=clock,
    )
    app.state.reset_notifier = reset_notifier or build_notifier(cfg)
    app.state.storage = storage or DocumentStorage(cfg.upload_dir, cfg.max_upload_bytes)

    install_error_handlers(app)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RequestId → Security → handler
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        max_age=3600,
    )

    app.include_router(api_router)

    @app.get("/", include_in_schema=False)
    async def root():
        """Public landing page for API clients."""
        return {
            "name": "ShareMe API",
            "version": __version__,
            "docs": "/docs",
            "health": "/api/health",
        }

    return app


# Default app instance (used by uvicorn: shareme.main:app)
app = create_app()
