"""Launches deployment pipelines as detached asyncio tasks."""

from __future__ import annotations

import asyncio
from typing import Set

import structlog
from prometheus_client import Counter, Gauge

from deploy_agent.core.config import Settings
from deploy_agent.client import ControlPlaneClient
from deploy_agent.deploy.executor import StackExecutor
from deploy_agent.deploy.models import DeploymentRequest, DeploymentStatus
from deploy_agent.deploy.pipeline import DeploymentPipeline
from deploy_agent.deploy.reporter import DeploymentReporter
from deploy_agent.deploy.workspace import WorkspaceManager
from deploy_agent.utils.logging import bind_deployment_context

logger = structlog.get_logger()

DEPLOYMENTS_TOTAL = Counter(
    "deploy_agent_deployments_total",
    "Finished deployments by outcome",
    ["status"],
)

DEPLOYMENTS_IN_PROGRESS = Gauge(
    "deploy_agent_deployments_in_progress",
    "Deployments currently running",
)


class DeploymentManager:
    """Runs one pipeline task per accepted request.

    There is no limit on concurrent deployments and nothing is kept once a
    task finishes.
    """

    def __init__(self, pipeline: DeploymentPipeline):
        self.pipeline = pipeline
        self._tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> "DeploymentManager":
        pipeline = DeploymentPipeline(
            workspaces=WorkspaceManager(settings.workspace_root),
            executor=StackExecutor(settings.docker_binary, timeout=settings.deploy_timeout),
            reporter=DeploymentReporter(ControlPlaneClient.from_settings(settings)),
        )
        return cls(pipeline)

    @property
    def active(self) -> int:
        return len(self._tasks)

    def submit(self, request: DeploymentRequest) -> asyncio.Task:
        """Start the pipeline for request and return without waiting for it."""
        task = asyncio.create_task(
            self._run(request),
            name=f"deployment-{request.deploymentId}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("Deployment task launched", deploymentId=request.deploymentId, active=self.active)
        return task

    async def _run(self, request: DeploymentRequest) -> DeploymentStatus:
        bind_deployment_context(request.deploymentId, request.name)
        DEPLOYMENTS_IN_PROGRESS.inc()
        try:
            status = await self.pipeline.run(request)
        except asyncio.CancelledError:
            DEPLOYMENTS_TOTAL.labels(status=DeploymentStatus.FAILED.value).inc()
            raise
        except Exception:
            logger.exception("Deployment task crashed")
            DEPLOYMENTS_TOTAL.labels(status=DeploymentStatus.FAILED.value).inc()
            return DeploymentStatus.FAILED
        finally:
            DEPLOYMENTS_IN_PROGRESS.dec()

        DEPLOYMENTS_TOTAL.labels(status=status.value).inc()
        return status

    async def shutdown(self, grace_seconds: float = 30.0) -> None:
        """Wait for in-flight deployments, cancelling whatever is left after the grace period."""
        pending = set(self._tasks)
        if not pending:
            return

        logger.info("Waiting for in-flight deployments", count=len(pending), grace_seconds=grace_seconds)
        _, still_running = await asyncio.wait(pending, timeout=grace_seconds)

        if still_running:
            logger.warning("Cancelling unfinished deployments", count=len(still_running))
            for task in still_running:
                task.cancel()
            await asyncio.gather(*still_running, return_exceptions=True)
