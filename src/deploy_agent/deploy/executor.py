"""Runs the external orchestration command for a prepared workspace."""

from __future__ import annotations

import asyncio
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import structlog

from deploy_agent.core.exceptions import ExecutionError
from deploy_agent.deploy.workspace import STACK_FILE_NAME

logger = structlog.get_logger()


@dataclass(frozen=True)
class ExecutionResult:
    stdout: str
    stderr: str
    returncode: int


def _decode(data: Optional[bytes]) -> str:
    return data.decode("utf-8", errors="replace") if data else ""


class StackExecutor:
    """Deploys a stack with ``docker stack deploy``."""

    def __init__(self, docker_binary: str = "docker", timeout: Optional[float] = None):
        """Initialize executor.

        Args:
            docker_binary: Executable name or path of the docker CLI
            timeout: Seconds before the process is killed; None waits forever
        """
        self.docker_binary = docker_binary
        self.timeout = timeout

    def command(self, stack_name: str) -> List[str]:
        """Argument vector for ``docker stack deploy``, relative to the workspace."""
        return [self.docker_binary, "stack", "deploy", "-c", STACK_FILE_NAME, stack_name]

    def describe(self, stack_name: str) -> str:
        """Printable form of the command, as shown in deployment logs."""
        return shlex.join(self.command(stack_name))

    async def deploy(self, workspace_path: Union[str, Path], stack_name: str) -> ExecutionResult:
        """Run the deploy command with the workspace as working directory.

        Output is captured in full. Raises ExecutionError when the process
        cannot be started, exits non-zero or runs past the timeout; the error
        carries the captured stdout/stderr of a process that ran to completion.
        """
        cmd = self.command(stack_name)
        logger.info("Running stack deploy", command=self.describe(stack_name), cwd=str(workspace_path))

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(workspace_path),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ExecutionError(f"cannot start {cmd[0]}: {exc}", code="start_failed") from exc

        try:
            stdout_b, stderr_b = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            await self._kill(process)
            logger.error("Stack deploy timed out", timeout=self.timeout, pid=process.pid)
            raise ExecutionError(
                f"timed out after {self.timeout:g}s",
                returncode=process.returncode,
                code="timeout",
            )
        except asyncio.CancelledError:
            await self._kill(process)
            raise

        stdout, stderr = _decode(stdout_b), _decode(stderr_b)
        if process.returncode != 0:
            logger.warning("Stack deploy exited non-zero", returncode=process.returncode)
            raise ExecutionError(
                f"exit status {process.returncode}",
                stdout=stdout,
                stderr=stderr,
                returncode=process.returncode,
                code="non_zero_exit",
            )

        logger.info("Stack deploy finished", returncode=process.returncode)
        return ExecutionResult(stdout=stdout, stderr=stderr, returncode=process.returncode)

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()
