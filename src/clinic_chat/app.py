from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from clinic_chat.api.deps import build_verifier
from clinic_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from clinic_chat.api.middleware.metrics import RequestTimingMiddleware
from clinic_chat.api.v1.routers import (
    conversations,
    dashboard,
    health,
    messages,
    ws,
)
from clinic_chat.application.exceptions import (
    AuthError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from clinic_chat.application.ports.auth import TokenVerifier
from clinic_chat.application.store import RecordStore
from clinic_chat.config import settings
from clinic_chat.infrastructure.bus.change_feed import ChangeFeedHub
from clinic_chat.infrastructure.bus.redis_pubsub import RedisChangePublisher, RedisPubSubSubscriber
from clinic_chat.infrastructure.db.session import AsyncSessionLocal, engine
from clinic_chat.infrastructure.db.store import SqlAlchemyRecordStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    if getattr(app.state, "store", None) is not None:
        # store supplied by the caller; nothing to wire
        yield
        return

    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    hub = ChangeFeedHub()
    subscriber = RedisPubSubSubscriber(
        app.state.redis,
        settings.CHANGE_FEED_CHANNEL,
        hub.dispatch_payload,
    )
    await subscriber.start()
    app.state.pubsub_subscriber = subscriber

    app.state.store = SqlAlchemyRecordStore(
        AsyncSessionLocal,
        RedisChangePublisher(app.state.redis, settings.CHANGE_FEED_CHANNEL),
        hub,
    )
    app.state.probes = {
        "postgres": _ping_postgres,
        "redis": app.state.redis.ping,
    }

    yield

    await subscriber.stop()
    await app.state.redis.aclose()
    await engine.dispose()
    app.state.store = None
    logger.info("Redis connection pool closed")


async def _ping_postgres() -> None:
    async with AsyncSessionLocal() as session:
        await session.execute(text("SELECT 1"))


def create_app(
    store: RecordStore | None = None,
    verifier: TokenVerifier | None = None,
) -> FastAPI:
    app = FastAPI(
        title="Clinic Chat Dashboard",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.verifier = verifier or build_verifier()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(messages.router)
    app.include_router(dashboard.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ConflictError)
    async def _conflict(_req: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(AuthError)
    async def _auth(_req: Request, exc: AuthError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": exc.detail})

    @app.exception_handler(StoreError)
    async def _store(_req: Request, exc: StoreError) -> JSONResponse:
        logger.warning("Store unavailable: %s", exc.detail)
        return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable"})
