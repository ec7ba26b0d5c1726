"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from qaforum.auth.router import router as auth_router
from qaforum.config import get_settings
from qaforum.database import close_db, create_schema, get_session, init_db
from qaforum.health.router import router as health_router
from qaforum.middleware import setup_middleware
from qaforum.notifications.service import init_notification_service
from qaforum.qa.answer_router import router as answer_router
from qaforum.qa.question_router import router as question_router
from qaforum.redis_client import close_redis, init_redis
from qaforum.rewards.router import router as rewards_router
from qaforum.security.history_router import router as history_router
from qaforum.security.language_router import router as language_router
from qaforum.security.password_reset_router import router as password_reset_router
from qaforum.social.router import router as posts_router
from qaforum.subscriptions.payments import validate_payment_settings
from qaforum.subscriptions.plans import seed_plans
from qaforum.subscriptions.router import router as subscriptions_router
from qaforum.users.router import router as friends_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    validate_payment_settings(settings)
    init_notification_service()
    await init_db(settings.database_url)
    if settings.database_url.startswith("sqlite"):
        await create_schema()

    try:
        if not await init_redis(settings.redis_url):
            logger.info("redis_disabled")
    except Exception:
        logger.warning("redis_init_failed", exc_info=True)

    # Seed subscription plans (idempotent)
    try:
        async for db in get_session():
            await seed_plans(db)
            break
    except Exception:
        logger.warning("plan_seeding_failed", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="QA Forum API",
        description="Backend API for QA Forum: questions, answers, rewards, subscriptions and a social feed",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(question_router)
    app.include_router(answer_router)
    app.include_router(rewards_router)
    app.include_router(subscriptions_router)
    app.include_router(language_router)
    app.include_router(history_router)
    app.include_router(password_reset_router)
    app.include_router(posts_router)
    app.include_router(friends_router)

    if settings.media_backend == "local":
        app.mount(
            settings.media_base_url,
            StaticFiles(directory=settings.media_root, check_dir=False),
            name="media",
        )

    return app


app = create_app()
