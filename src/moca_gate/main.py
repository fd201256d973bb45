"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from moca_gate.admin.router import router as admin_router
from moca_gate.config import get_settings
from moca_gate.database import close_db, init_db
from moca_gate.health.router import router as health_router
from moca_gate.middleware import setup_middleware
from moca_gate.nft.chain import reset_staking_client
from moca_gate.redis_client import close_redis, init_redis
from moca_gate.reservations.router import router as gating_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    yield

    reset_staking_client()
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Moca Gating API",
        description="Invite-code and staked-NFT gated registration service",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(gating_router)
    app.include_router(admin_router)

    return app


app = create_app()
