"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. The realtime hub (connection registry + broadcaster + publisher)
is created here, once per app, and stored on app.state so route handlers
and the websocket endpoint share the same rooms.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from synergy import __version__
from synergy.api import api_router
from synergy.config import settings
from synergy.realtime.hub import ProjectMembershipAuthorizer, RealtimeHub

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "synergy.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        ws_require_membership=settings.ws_require_membership,
    )

    yield

    logger.info("synergy.shutdown", **app.state.realtime.registry.stats())

    # Close database engine
    from synergy.db.engine import engine
    await engine.dispose()


def build_hub() -> RealtimeHub:
    authorizer = None
    if settings.ws_require_membership:
        from synergy.db.engine import async_session_factory
        authorizer = ProjectMembershipAuthorizer(async_session_factory)
    return RealtimeHub(outbox_size=settings.ws_outbox_size, authorizer=authorizer)


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="SynergySphere",
        description="Team project collaboration with live project boards",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.realtime = build_hub()

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → Security → RequestId → handler

    from synergy.middleware.request_id import RequestIdMiddleware
    from synergy.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    # Real-time project rooms
    from synergy.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: synergy.main:app)
app = create_app()
