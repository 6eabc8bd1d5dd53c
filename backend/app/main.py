"""Creator Pipeline Engine - FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import health
from api.v1.router import api_v1_router
from app.config import Settings, get_settings
from core.logging_config import setup_logging
from core.middleware import RequestTrackingMiddleware, setup_exception_handlers
from db.database import close_db, init_db
from integrations.claude_client import get_claude_client
from notifications.manager import get_notification_manager
from workflow.factory import build_action_registry

logger = logging.getLogger(__name__)


def _log_pipeline_config(settings: Settings) -> None:
    actions = ", ".join(build_action_registry().available_types)
    channels = ", ".join(get_notification_manager().configured_channels)
    logger.info(f"[startup] Actions: {actions}")
    logger.info(f"[startup] Notification channels: {channels}")
    logger.info(
        f"[startup] Retry backoff base {settings.RETRY_BASE_DELAY}s, cap {settings.RETRY_MAX_DELAY}s, "
        f"default max retries {settings.RETRY_DEFAULT_MAX_RETRIES}"
    )
    if not get_claude_client().is_configured:
        logger.warning("[startup] ANTHROPIC_API_KEY not set; ai_generate steps will fail")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings)
    await init_db()
    _log_pipeline_config(settings)
    logger.info(f"[startup] {settings.APP_NAME} v{settings.APP_VERSION} started ({settings.ENVIRONMENT})")

    yield

    await get_claude_client().close()
    await close_db()
    logger.info("[shutdown] Connections closed")


def create_app() -> FastAPI:
    """Build the API: request tracking, CORS, error mapping and both router trees."""
    settings = get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Workflow execution engine that moves UGC creators through "
                    "a brand's onboarding and content pipeline.",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(RequestTrackingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )
    setup_exception_handlers(app)

    # Unversioned probes for load balancers
    app.include_router(health.router, prefix="/api")
    app.include_router(api_v1_router, prefix=settings.API_V1_PREFIX)

    return app


app = create_app()
