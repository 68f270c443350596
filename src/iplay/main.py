"""FastAPI application factory for the callable endpoints."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from iplay.callables.router import router as callables_router
from iplay.config import Settings, get_settings
from iplay.database import create_engine, create_session_factory
from iplay.health.router import router as health_router
from iplay.identity import TokenVerifier
from iplay.middleware import setup_middleware
from iplay.redis_client import create_redis
from iplay.storage import Bucket, SqlBucket
from iplay.store import DocumentStore, RedisChangePublisher, SqlDocumentStore


def create_app(
    settings: Settings | None = None,
    *,
    store: DocumentStore | None = None,
    bucket: Bucket | None = None,
    token_verifier: TokenVerifier | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Handles passed in are installed on ``app.state`` immediately; anything
    missing is built from settings at startup and released at shutdown.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Startup and shutdown lifecycle."""
        if app.state.token_verifier is None:
            app.state.token_verifier = TokenVerifier.from_settings(settings)

        if app.state.store is None or app.state.bucket is None:
            app.state.engine = create_engine(settings.database_url)
            session_factory = create_session_factory(app.state.engine)
            if app.state.store is None:
                app.state.redis = create_redis(settings.redis_url)
                app.state.store = SqlDocumentStore(
                    session_factory,
                    publisher=RedisChangePublisher(app.state.redis, maxlen=settings.change_stream_maxlen),
                    max_batch_writes=settings.batch_max_writes,
                )
            if app.state.bucket is None:
                app.state.bucket = SqlBucket(settings.bucket_name, session_factory)

        yield

        if app.state.redis is not None:
            await app.state.redis.aclose()
        if app.state.engine is not None:
            await app.state.engine.dispose()

    app = FastAPI(
        title="iPlay Functions API",
        description="Callable admin operations for the iPlay learning platform",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.bucket = bucket
    app.state.token_verifier = token_verifier
    app.state.engine = None
    app.state.redis = None

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(callables_router)

    return app


app = create_app()
