from __future__ import annotations

import logging

from fastapi import FastAPI

from deadnetguard_api.api.errors import install_error_handlers
from deadnetguard_api.api.routers.admin import router as admin_router
from deadnetguard_api.api.routers.admin_sessions import router as admin_sessions_router
from deadnetguard_api.api.routers.banlist import router as banlist_router
from deadnetguard_api.api.routers.health import router as health_router
from deadnetguard_api.api.routers.reports import router as reports_router
from deadnetguard_api.api.routers.votes import router as votes_router
from deadnetguard_api.observability.logging import access_log, configure_logging
from deadnetguard_api.observability.metrics import render_metrics
from deadnetguard_api.observability.middleware import RequestContextMiddleware
from deadnetguard_api.observability.tracing import configure_tracing
from deadnetguard_api.settings import get_settings


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging()
    configure_tracing()
    logger = logging.getLogger("deadnetguard_api.main")
    app = FastAPI(title="DeadNetGuard API", version="0.1.0")

    app.add_middleware(RequestContextMiddleware, access_log=access_log)
    install_error_handlers(app)

    app.include_router(health_router)
    app.include_router(reports_router)
    app.include_router(votes_router)
    app.include_router(banlist_router)
    app.include_router(admin_sessions_router)
    app.include_router(admin_router)

    app.add_api_route("/metrics", render_metrics, methods=["GET"], include_in_schema=False)

    logger.info(
        "app_configured",
        extra={
            "report_ban_threshold": settings.report_ban_threshold,
            "score_ban_threshold": settings.score_ban_threshold,
            "setup_enabled": settings.setup_enabled,
        },
    )
    return app


app = create_app()
