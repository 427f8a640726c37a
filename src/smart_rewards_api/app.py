from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from smart_rewards_api.core.settings import settings
from smart_rewards_api.db.session import async_session
from .api.routes import api_router
from .core.logging import configure_logging
from .observability.tracing import configure_tracing
from .workers import MukandoRewardWorker


APP_VERSION = "0.1.0"


def _session_factory():
    return async_session()


@asynccontextmanager
async def lifespan(app: FastAPI):
    reward_worker = MukandoRewardWorker(
        session_factory=_session_factory,
        interval_seconds=settings.mukando_reward_interval_seconds,
    )
    app.state.mukando_reward_worker = reward_worker

    reward_worker_enabled = settings.mukando_reward_worker_enabled
    if reward_worker_enabled:
        reward_worker.start()
        logger.info(
            "Mukando reward worker enabled",
            interval_seconds=reward_worker.interval_seconds,
            min_age_days=settings.mukando_payout_min_age_days,
        )
    else:
        logger.info(
            "Mukando reward worker disabled",
            reason="mukando_reward_worker_enabled is false",
        )

    try:
        yield
    finally:
        if reward_worker_enabled and reward_worker.is_running:
            await reward_worker.stop()


def create_app() -> FastAPI:
    """Application factory for the Smart Rewards FastAPI service."""
    configure_logging(
        service_name="smart-rewards-api",
        environment=settings.environment,
        version=APP_VERSION,
    )

    app = FastAPI(
        title="Smart Rewards API",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    configure_tracing(
        app,
        service_name="smart-rewards-api",
        service_version=APP_VERSION,
        environment=settings.environment,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    @app.get("/healthz", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {
            "status": "ok",
            "environment": settings.environment,
            "version": APP_VERSION,
        }

    return app
