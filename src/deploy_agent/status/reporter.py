"""Fixed-interval status reporting loop."""

from __future__ import annotations

import asyncio

import structlog

from deploy_agent.client import ControlPlaneClient
from deploy_agent.core.config import Settings
from deploy_agent.core.exceptions import ReportingError
from deploy_agent.status.collector import StatusCollector

logger = structlog.get_logger()


class StatusReporter:
    """Reports node status to the admin panel every ``interval`` seconds."""

    def __init__(self, client: ControlPlaneClient, collector: StatusCollector, vps_id: str, interval: float):
        self.client = client
        self.collector = collector
        self.vps_id = vps_id
        self.interval = interval

    @classmethod
    def from_settings(cls, settings: Settings) -> "StatusReporter":
        return cls(
            client=ControlPlaneClient.from_settings(settings),
            collector=StatusCollector(settings.docker_binary),
            vps_id=settings.vps_id,
            interval=settings.report_interval,
        )

    async def report_once(self) -> bool:
        report = await self.collector.collect()
        try:
            await self.client.post_json(f"/api/vps/{self.vps_id}/status", report.model_dump())
        except ReportingError as exc:
            logger.warning("Status report failed", error=str(exc), status_code=exc.status_code)
            return False
        logger.debug(
            "Status reported",
            cpu=report.cpuUsage,
            memory=report.memoryUsage,
            disk=report.diskUsage,
            containers=len(report.containers),
        )
        return True

    async def run(self) -> None:
        """Report immediately, then once per interval until cancelled.

        The period is measured from the start of each report.
        """
        logger.info("Status reporter started", vps_id=self.vps_id, interval=self.interval)
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            try:
                await self.report_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Status report crashed")
            await asyncio.sleep(max(0.0, self.interval - (loop.time() - started)))
