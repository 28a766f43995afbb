"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from ecostep.carbon.router import router as carbon_router
from ecostep.carbon.seed import seed_achievements
from ecostep.config import Settings, get_settings
from ecostep.database import create_engine, create_session_factory, create_tables
from ecostep.dependencies import memory_store_opener, sql_store_opener
from ecostep.health.router import router as health_router
from ecostep.middleware import setup_middleware
from ecostep.storage import MemoryCarbonStore, RetryPolicy

logger = structlog.get_logger()


async def startup(app: FastAPI) -> None:
    """Build the storage backend on app.state and seed the achievement catalogue."""
    settings: Settings = app.state.settings
    app.state.engine = None

    if settings.storage_backend == "memory":
        app.state.open_store = memory_store_opener(MemoryCarbonStore())
    else:
        engine = create_engine(settings.database_url)
        if settings.auto_create_tables:
            await create_tables(engine)
        retry = RetryPolicy(
            attempts=settings.storage_retry_attempts,
            backoff_seconds=settings.storage_retry_backoff_seconds,
        )
        app.state.engine = engine
        app.state.open_store = sql_store_opener(create_session_factory(engine), retry)

    # Seed achievement definitions (idempotent)
    if settings.seed_achievements:
        try:
            async with app.state.open_store() as store:
                await seed_achievements(store)
        except Exception:
            logger.warning("achievement_seeding_failed", exc_info=True)


async def shutdown(app: FastAPI) -> None:
    """Dispose of the database engine, if any."""
    engine = getattr(app.state, "engine", None)
    if engine is not None:
        await engine.dispose()
        app.state.engine = None
    app.state.open_store = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    await startup(app)
    yield
    await shutdown(app)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="EcoStep API",
        description="Carbon accounting and achievements for the EcoStep footprint tracker",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(carbon_router)

    return app


app = create_app()
