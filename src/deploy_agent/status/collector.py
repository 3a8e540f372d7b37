"""Samples host utilization and running containers."""

from __future__ import annotations

import asyncio
from typing import List, Tuple

import psutil
import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger()


class StatusReport(BaseModel):
    status: str = "online"
    cpuUsage: float = 0.0
    memoryUsage: float = 0.0
    diskUsage: float = 0.0
    containers: List[str] = Field(default_factory=list)


class StatusCollector:
    """Builds a fresh StatusReport on every call."""

    def __init__(self, docker_binary: str = "docker", disk_path: str = "/", cpu_interval: float = 1.0):
        self.docker_binary = docker_binary
        self.disk_path = disk_path
        self.cpu_interval = cpu_interval

    def _cpu(self) -> float:
        try:
            return float(psutil.cpu_percent(interval=self.cpu_interval))
        except (psutil.Error, OSError) as exc:
            logger.warning("CPU sampling failed", error=str(exc))
            return 0.0

    def _memory(self) -> float:
        try:
            return float(psutil.virtual_memory().percent)
        except (psutil.Error, OSError) as exc:
            logger.warning("Memory sampling failed", error=str(exc))
            return 0.0

    def _disk(self) -> float:
        try:
            return float(psutil.disk_usage(self.disk_path).percent)
        except (psutil.Error, OSError) as exc:
            logger.warning("Disk sampling failed", path=self.disk_path, error=str(exc))
            return 0.0

    def sample_usage(self) -> Tuple[float, float, float]:
        """Blocking: cpu_percent sleeps for cpu_interval."""
        return self._cpu(), self._memory(), self._disk()

    async def list_containers(self) -> List[str]:
        """Names of running containers, or [] if docker is unavailable."""
        cmd = [self.docker_binary, "ps", "--format", "{{.Names}}"]
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await process.communicate()
        except OSError as exc:
            logger.warning("Container listing failed", error=str(exc))
            return []

        if process.returncode != 0:
            logger.warning(
                "Container listing failed",
                returncode=process.returncode,
                stderr=stderr.decode("utf-8", errors="replace").strip(),
            )
            return []

        output = stdout.decode("utf-8", errors="replace")
        return [line.strip() for line in output.splitlines() if line.strip()]

    async def collect(self) -> StatusReport:
        loop = asyncio.get_event_loop()
        cpu, memory, disk = await loop.run_in_executor(None, self.sample_usage)
        containers = await self.list_containers()
        return StatusReport(cpuUsage=cpu, memoryUsage=memory, diskUsage=disk, containers=containers)
