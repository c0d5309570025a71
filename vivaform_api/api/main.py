from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from vivaform_api.api.errors import install_error_handling
from vivaform_api.api.routes import (
    admin,
    articles,
    auth,
    dashboard,
    features,
    foods,
    health,
    nutrition,
    quiz,
    recommendations,
    subscriptions,
    support,
    users,
    water,
    webhooks,
    weight,
)
from vivaform_api.core.env_validation import validate_environment
from vivaform_api.core.logging import configure_logging
from vivaform_api.core.settings import AppSettings, get_app_settings
from vivaform_api.db.run_migrations import upgrade_head
from vivaform_api.db.seed import seed_all
from vivaform_api.db.session import dispose_engine
from vivaform_api.services.scheduler import RecommendationScheduler

settings = get_app_settings()
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

ROUTE_MODULES = (
    health,
    auth,
    users,
    nutrition,
    foods,
    water,
    weight,
    recommendations,
    dashboard,
    quiz,
    subscriptions,
    webhooks,
    articles,
    support,
    features,
    admin,
)

OPENAPI_TAGS = [
    {"name": "Health", "description": "Liveness probe and business gauges."},
    {"name": "Auth", "description": "Registration, login, tokens and password lifecycle."},
    {"name": "Users", "description": "User accounts."},
    {"name": "Nutrition", "description": "Meal logging, daily summaries and the weekly meal plan."},
    {"name": "Foods", "description": "Food catalog search and submissions."},
    {"name": "Water", "description": "Water intake logging."},
    {"name": "Weight", "description": "Weigh-ins, history and progress."},
    {"name": "Recommendations", "description": "Rule-based recommendations."},
    {"name": "Dashboard", "description": "Daily overview and health score."},
    {"name": "Quiz", "description": "Onboarding quiz funnel, calculator and leads."},
    {"name": "Subscriptions", "description": "Stripe checkout, portal and subscription state."},
    {"name": "Webhooks", "description": "Stripe webhook receiver."},
    {"name": "Articles", "description": "Articles CMS."},
    {"name": "Support", "description": "User support tickets."},
    {"name": "Features", "description": "Feature flag evaluation."},
    {"name": "Admin", "description": "Back-office: users, moderation, overview, settings, toggles and audit logs."},
]


async def _prepare_database(config: AppSettings) -> None:
    # Failures are logged and the API still starts; /health reports the database state
    if config.RUN_MIGRATIONS_ON_STARTUP:
        try:
            await run_in_threadpool(upgrade_head)
            logger.info("Migrations applied")
        except Exception:
            logger.exception("Migration step failed")
    if config.AUTO_SEED:
        try:
            await seed_all()
        except Exception:
            logger.exception("Seeding step failed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    validate_environment()
    await _prepare_database(settings)

    scheduler: Optional[RecommendationScheduler] = None
    if settings.RECOMMENDATIONS_SCHEDULE_ENABLED:
        scheduler = RecommendationScheduler(settings.RECOMMENDATIONS_SCHEDULE_HOUR, settings.RECOMMENDATIONS_SCHEDULE_TZ)
        scheduler.start()
    try:
        yield
    finally:
        if scheduler is not None:
            await scheduler.stop()
        await dispose_engine()


# PUBLIC_INTERFACE
def create_app(config: AppSettings = settings) -> FastAPI:
    """Build the FastAPI application with CORS, error envelope and all /api/v1 routers."""
    docs = config.ENABLE_DOCS
    application = FastAPI(
        title=config.APP_NAME,
        description=config.APP_DESCRIPTION,
        version=config.APP_VERSION,
        openapi_tags=OPENAPI_TAGS,
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
        openapi_url="/openapi.json" if docs else None,
        lifespan=lifespan,
    )

    allow_credentials = config.CORS_ALLOW_CREDENTIALS
    if "*" in config.CORS_ORIGINS and allow_credentials:
        logger.warning("Wildcard CORS origin cannot be combined with credentials; credentials disabled")
        allow_credentials = False
    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=allow_credentials,
        allow_methods=config.CORS_ALLOW_METHODS,
        allow_headers=config.CORS_ALLOW_HEADERS,
    )
    install_error_handling(application)

    api_v1 = APIRouter(prefix="/api/v1")
    for module in ROUTE_MODULES:
        api_v1.include_router(module.router)
    application.include_router(api_v1)
    return application


app = create_app()
