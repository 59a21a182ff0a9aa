"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from c42.admin.router import router as admin_router
from c42.chat.router import router as chat_router
from c42.config import get_settings
from c42.database import close_db, get_session_factory, init_db
from c42.health.router import router as health_router
from c42.middleware import setup_middleware
from c42.ranks.seed import load_and_validate_rank_table, seed_ranks
from c42.redis_client import close_redis, init_redis
from c42.users.router import router as users_router
from c42.ws.registry import ConnectionRegistry
from c42.ws.router import router as ws_router

logger = structlog.get_logger()


async def prepare_rank_table() -> None:
    """Seed ranks (idempotent) and refuse to start on an inconsistent system table.

    Raises:
        RankTableError: The stored system ranks do not form a valid ladder.
    """
    async with get_session_factory()() as db:
        try:
            await seed_ranks(db)
        except SQLAlchemyError:
            logger.warning("rank_seeding_failed", detail="tables may not exist yet", exc_info=True)
            return
        ranks = await load_and_validate_rank_table(db)
    logger.info("rank_table_loaded", system_ranks=len(ranks))


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    await prepare_rank_table()

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="42-коммьюнити API",
        description="Ranks, activity points and realtime chat for the 42 community",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.connection_registry = ConnectionRegistry()

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(chat_router)
    app.include_router(admin_router)
    app.include_router(ws_router)

    return app


app = create_app()
