"""
Application entry point.

Creates the FastAPI application and wires together:
- Routers (Firestore, Auth, Storage, Admin, Realtime, Health)
- Error handlers (every failure normalized at one boundary)
- Security middleware (headers, CORS, rate limiting)
- Logging configuration
- The change fan-out shared by document routes and WebSocket clients

No business logic belongs here.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gateway.core.config import Settings, collect_config_warnings, settings
from gateway.infrastructure.backend import Backends
from gateway.infrastructure.realtime.fanout import ChangeFanout
from gateway.interfaces.backend.admin_router import router as admin_router
from gateway.interfaces.backend.documents_router import router as documents_router
from gateway.interfaces.backend.files_router import router as files_router
from gateway.interfaces.backend.mcp_router import router as mcp_router
from gateway.interfaces.backend.users_router import router as users_router
from gateway.interfaces.health import router as health_router
from gateway.interfaces.realtime import router as realtime_router
from gateway.shared.errors.handlers import register_error_handlers
from gateway.shared.logging import RequestLoggingMiddleware, configure_logging
from gateway.shared.security.headers import SecurityHeadersMiddleware
from gateway.shared.security.rate_limiting import build_limiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: report configuration problems, stop the fan-out."""
    config: Settings = app.state.settings
    for warning in collect_config_warnings(config):
        logger.warning(warning)
    logger.info(
        "%s %s started (environment=%s, in-memory backends=%s)",
        config.project_name,
        config.version,
        config.environment,
        config.use_in_memory_backends,
    )

    yield

    # Shutdown
    app.state.fanout.close()
    logger.info("Change fan-out closed")


def create_app(
    app_settings: Settings | None = None,
    backends: Backends | None = None,
    fanout: ChangeFanout | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Registers routers, error handlers, and security middleware.
    This is the composition root of the application.

    Args:
        app_settings: Settings to use instead of the environment's.
        backends: Backend services; built from settings when omitted.
        fanout: Change fan-out; a new one is created when omitted.

    Returns:
        A fully configured FastAPI application instance.
    """
    config = app_settings or settings
    configure_logging(level=config.log_level, log_file=config.log_file_path)

    app = FastAPI(
        title=config.project_name,
        version=config.version,
        docs_url="/docs" if config.debug else None,
        redoc_url="/redoc" if config.debug else None,
        lifespan=lifespan,
    )

    app.state.settings = config
    app.state.started_at = time.monotonic()
    app.state.backends = backends or Backends(config)
    app.state.fanout = fanout or ChangeFanout(
        max_queue_size=config.fanout_queue_size,
        delivery_timeout=config.fanout_delivery_timeout_seconds,
        max_history=config.fanout_history_size,
    )

    # --- Rate Limiting (enforced by router dependencies) ---
    app.state.limiter = build_limiter(config.rate_limit_default)

    # --- Security Middleware ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=config.cors_credentials,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    # --- Error Handlers ---
    register_error_handlers(app, production=config.is_production)

    # --- Routers ---
    app.include_router(health_router)
    for router in (
        documents_router,
        users_router,
        files_router,
        admin_router,
        mcp_router,
        realtime_router,
    ):
        app.include_router(router, prefix=config.api_prefix)

    return app


app = create_app()
