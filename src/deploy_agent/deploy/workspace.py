"""Per-deployment workspaces holding the stack definition and env file."""

from __future__ import annotations

import asyncio
import shutil
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Mapping, Union

import aiofiles
import structlog

from deploy_agent.core.exceptions import WorkspaceError

logger = structlog.get_logger()

STACK_FILE_NAME = "docker-compose.yml"
ENV_FILE_NAME = ".env"


def workspace_dir_name(deployment_id: int) -> str:
    """Directory name of a deployment workspace, e.g. ``deploy-42``."""
    return f"deploy-{deployment_id}"


def render_env_file(env_vars: Mapping[str, str]) -> str:
    """Render env vars as ``KEY=VALUE`` lines.

    Values are written verbatim: no quoting, no escaping.
    """
    return "".join(f"{key}={value}\n" for key, value in env_vars.items())


@dataclass(frozen=True)
class Workspace:
    deployment_id: int
    path: Path

    @property
    def stack_file(self) -> Path:
        return self.path / STACK_FILE_NAME

    @property
    def env_file(self) -> Path:
        return self.path / ENV_FILE_NAME

    async def write_env_file(self, env_vars: Mapping[str, str]) -> bool:
        """Write the env file. Returns False, writing nothing, when there are no vars."""
        if not env_vars:
            return False
        try:
            async with aiofiles.open(self.env_file, "w", encoding="utf-8") as f:
                await f.write(render_env_file(env_vars))
        except OSError as exc:
            raise WorkspaceError(f"cannot write {self.env_file}: {exc}", code="env_write_failed") from exc
        logger.debug("Env file written", path=str(self.env_file), count=len(env_vars))
        return True


class WorkspaceManager:
    """Creates and removes deployment workspaces under a shared root."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path_for(self, deployment_id: int) -> Path:
        """Workspace path for a deployment; nothing is created."""
        return self.root / workspace_dir_name(deployment_id)

    async def prepare(self, deployment_id: int, stack_definition: str) -> Workspace:
        """Create the workspace directory and write the stack definition into it.

        Raises WorkspaceError. A directory created here is removed again if the
        stack definition cannot be written.
        """
        path = self.path_for(deployment_id)
        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, lambda: path.mkdir(mode=0o755, parents=True, exist_ok=True))
        except OSError as exc:
            raise WorkspaceError(f"cannot create {path}: {exc}", code="mkdir_failed") from exc

        workspace = Workspace(deployment_id=deployment_id, path=path)
        try:
            async with aiofiles.open(workspace.stack_file, "w", encoding="utf-8") as f:
                await f.write(stack_definition)
        except OSError as exc:
            await self.cleanup(workspace)
            raise WorkspaceError(
                f"cannot write {workspace.stack_file}: {exc}", code="stack_write_failed"
            ) from exc

        logger.info("Workspace prepared", path=str(path))
        return workspace

    async def cleanup(self, workspace: Workspace) -> None:
        """Recursively remove the workspace. Never raises."""
        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, shutil.rmtree, workspace.path)
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.error("Failed to remove workspace", path=str(workspace.path), error=str(exc))
            return
        logger.info("Workspace removed", path=str(workspace.path))

    @asynccontextmanager
    async def workspace(self, deployment_id: int, stack_definition: str) -> AsyncIterator[Workspace]:
        """Scope a workspace: prepared on entry, removed on every exit path."""
        ws = await self.prepare(deployment_id, stack_definition)
        try:
            yield ws
        finally:
            await self.cleanup(ws)
