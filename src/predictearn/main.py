"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from predictearn.checkin.router import admin_router as questions_admin_router
from predictearn.checkin.router import router as checkin_router
from predictearn.config import get_settings
from predictearn.database import close_db, get_session, init_db
from predictearn.feedback.router import router as feedback_router
from predictearn.health.router import router as health_router
from predictearn.ledger.router import router as ledger_router
from predictearn.middleware import setup_middleware
from predictearn.orders.router import router as webhooks_router
from predictearn.predictions.router import admin_router as predictions_admin_router
from predictearn.predictions.router import router as predictions_router
from predictearn.redis_client import close_redis, init_redis
from predictearn.system_settings.router import router as settings_router
from predictearn.system_settings.service import seed_system_settings
from predictearn.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Seed point economy settings (idempotent)
    try:
        async for db in get_session():
            await seed_system_settings(db)
            break
    except SQLAlchemyError:
        logger.warning("system_settings_seed_failed", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="PredictEarn API",
        description="Points ledger, daily check-ins, prediction contests and order reconciliation",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(checkin_router)
    app.include_router(questions_admin_router)
    app.include_router(predictions_router)
    app.include_router(predictions_admin_router)
    app.include_router(feedback_router)
    app.include_router(ledger_router)
    app.include_router(settings_router)
    app.include_router(webhooks_router)

    return app


app = create_app()
