"""Deployment pipeline: workspace, stack deploy and status reporting in order.

Every milestone appends to the deployment log and most of them push the full
log to the admin panel, so the remote side sees a growing snapshot:

    deploying  "Starting deployment"
    deploying  "Stack definition created"
    deploying  "Executing: docker stack deploy ..."
    deployed | failed

A workspace failure short-circuits after the first report. Exactly one
terminal status is reported per run.
"""

from __future__ import annotations

import asyncio

import structlog

from deploy_agent.core.exceptions import ExecutionError, WorkspaceError
from deploy_agent.deploy.executor import StackExecutor
from deploy_agent.deploy.models import DeploymentLog, DeploymentRequest, DeploymentStatus
from deploy_agent.deploy.reporter import DeploymentReporter
from deploy_agent.deploy.workspace import Workspace, WorkspaceManager

logger = structlog.get_logger()


class DeploymentPipeline:
    """Runs one deployment request through its collaborators.

    The pipeline does no I/O of its own; the workspace manager, executor and
    reporter are injected and may be replaced with in-memory fakes.
    """

    def __init__(
        self,
        workspaces: WorkspaceManager,
        executor: StackExecutor,
        reporter: DeploymentReporter,
    ):
        self.workspaces = workspaces
        self.executor = executor
        self.reporter = reporter

    async def run(self, request: DeploymentRequest) -> DeploymentStatus:
        log = DeploymentLog()
        logger.info("Deployment started", stack=request.name)

        log.info("Starting deployment")

        try:
            await self._publish(request, log)
            async with self.workspaces.workspace(request.deploymentId, request.dockerCompose) as workspace:
                status = await self._deploy_in_workspace(request, workspace, log)
        except WorkspaceError as exc:
            # Only prepare() can get here; later workspace errors are handled inside
            status = await self._fail(request, log, f"Failed to create workspace: {exc}")
        except asyncio.CancelledError:
            if not log.status.is_terminal:
                await self._fail(request, log, "Deployment cancelled: agent shutting down")
            raise
        except Exception as exc:
            logger.exception("Unexpected deployment error", stack=request.name)
            if not log.status.is_terminal:
                status = await self._fail(request, log, f"Deployment failed: unexpected error: {exc}")
            else:
                status = log.status

        logger.info("Deployment finished", stack=request.name, deployment_status=status.value)
        return status

    async def _deploy_in_workspace(
        self,
        request: DeploymentRequest,
        workspace: Workspace,
        log: DeploymentLog,
    ) -> DeploymentStatus:
        log.info("Stack definition created")
        await self._publish(request, log)

        if request.envVars:
            try:
                await workspace.write_env_file(request.envVars)
            except WorkspaceError as exc:
                return await self._fail(request, log, f"Failed to write environment file: {exc}")
            log.info("Environment variables configured")

        log.info(f"Executing: {self.executor.describe(request.name)}")
        await self._publish(request, log)

        try:
            result = await self.executor.deploy(workspace.path, request.name)
        except ExecutionError as exc:
            messages = [f"Deployment failed: {exc}"]
            if exc.stderr:
                messages.append(exc.stderr)
            return await self._fail(request, log, *messages)

        if result.stdout:
            log.info(result.stdout)
        log.info("Deployment completed successfully")
        log.finish(DeploymentStatus.DEPLOYED)
        await self._publish(request, log)
        return DeploymentStatus.DEPLOYED

    async def _fail(self, request: DeploymentRequest, log: DeploymentLog, *messages: str) -> DeploymentStatus:
        for message in messages:
            log.error(message)
        log.finish(DeploymentStatus.FAILED)
        logger.warning("Deployment failed", stack=request.name, reason=messages[0])
        await self._publish(request, log)
        return DeploymentStatus.FAILED

    async def _publish(self, request: DeploymentRequest, log: DeploymentLog) -> None:
        await self.reporter.report(request.deploymentId, log.status, log.snapshot())
