"""Best-effort deployment status reporting to the admin panel."""

from __future__ import annotations

from typing import Dict, List

import structlog

from deploy_agent.client import ControlPlaneClient
from deploy_agent.core.exceptions import ReportingError
from deploy_agent.deploy.models import DeploymentStatus

logger = structlog.get_logger()


class DeploymentReporter:
    """Pushes ``{status, logs}`` snapshots for a deployment."""

    def __init__(self, client: ControlPlaneClient):
        self.client = client

    async def report(
        self,
        deployment_id: int,
        status: DeploymentStatus,
        logs: List[Dict[str, str]],
    ) -> bool:
        """Send one status update. Failures are logged and swallowed."""
        payload = {"status": status.value, "logs": logs}
        try:
            await self.client.post_json(f"/api/deployments/{deployment_id}/status", payload)
        except ReportingError as exc:
            logger.warning(
                "Failed to update deployment status",
                deployment_status=status.value,
                error=str(exc),
                status_code=exc.status_code,
                response_body=exc.body or None,
            )
            return False

        logger.debug("Deployment status reported", deployment_status=status.value, log_entries=len(logs))
        return True
