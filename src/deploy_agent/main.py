"""Application factory and server runner for the deploy agent."""

import asyncio
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from deploy_agent import __version__
from deploy_agent.api.deploy import router as deploy_router
from deploy_agent.api.health import router as health_router
from deploy_agent.api.middleware import (
    setup_error_handling,
    setup_logging_middleware,
    setup_metrics_middleware,
)
from deploy_agent.core.config import Settings
from deploy_agent.deploy.manager import DeploymentManager
from deploy_agent.status.reporter import StatusReporter
from deploy_agent.utils.logging import setup_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    logger.info(
        "Starting deploy agent",
        version=__version__,
        vps_id=settings.vps_id,
        admin_panel_url=settings.admin_panel_url,
    )

    app.state.status_task = None
    if settings.status_reporting_enabled:
        reporter = StatusReporter.from_settings(settings)
        app.state.status_task = asyncio.create_task(reporter.run(), name="status-reporter")
    else:
        logger.info("Status reporting disabled")

    yield

    logger.info("Shutting down deploy agent")
    status_task = app.state.status_task
    if status_task is not None:
        status_task.cancel()
        try:
            await status_task
        except asyncio.CancelledError:
            pass

    manager: DeploymentManager = app.state.deployment_manager
    await manager.shutdown(settings.shutdown_grace_seconds)


def create_app(settings: Settings) -> FastAPI:
    """Create FastAPI application."""
    setup_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Deploy Agent",
        version=__version__,
        description="Host agent running container-stack deployments for the admin panel",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.deployment_manager = DeploymentManager.from_settings(settings)

    setup_error_handling(app)
    setup_logging_middleware(app)
    setup_metrics_middleware(app)

    app.include_router(health_router, tags=["health"])
    app.include_router(deploy_router, tags=["deploy"])

    if settings.metrics_enabled:
        app.mount("/metrics", make_asgi_app())

    return app


def run(settings: Settings) -> None:
    """Serve the agent until SIGTERM/SIGINT.

    uvicorn owns the signal handlers; on either signal it runs the lifespan
    shutdown, which drains in-flight deployments.
    """
    app = create_app(settings)
    logger.info("Deploy agent API listening", host=settings.host, port=settings.port)

    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,  # We handle logging ourselves
        access_log=False,  # Handled by middleware
    )
    server = uvicorn.Server(config)
    server.run()
