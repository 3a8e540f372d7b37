"""
Pytest configuration and fixtures for deploy agent tests.
"""

import os
import stat
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from deploy_agent.core.config import Settings
from deploy_agent.core.exceptions import ExecutionError
from deploy_agent.deploy.executor import ExecutionResult, StackExecutor
from deploy_agent.deploy.models import DeploymentStatus

ADMIN_URL = "http://admin.test"
API_KEY = "test-api-key"


FAKE_DOCKER = """#!/bin/sh
# Stand-in for the docker CLI used by executor and collector tests.
if [ "$1" = "ps" ]; then
  printf 'web_app.1\\napi_db.1\\n'
  exit 0
fi
if [ ! -f "$4" ]; then
  echo "missing stack file $4" >&2
  exit 3
fi
case "$5" in
  fail)
    echo "port in use" >&2
    exit 1
    ;;
  slow)
    exec sleep 10
    ;;
  quiet)
    ;;
  *)
    echo "Creating service $5_web"
    ;;
esac
"""


@pytest.fixture(autouse=True)
def clear_agent_env(monkeypatch):
    """Keep DEPLOY_AGENT_* variables from the outer environment out of tests."""
    for key in list(os.environ):
        if key.startswith("DEPLOY_AGENT_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        admin_panel_url=ADMIN_URL,
        vps_id="7",
        api_key=API_KEY,
        workspace_root=str(tmp_path / "workspaces"),
        status_reporting_enabled=False,
        shutdown_grace_seconds=1.0,
        log_format="console",
    )


@pytest.fixture
def fake_docker(tmp_path: Path) -> str:
    path = tmp_path / "bin" / "docker"
    path.parent.mkdir(parents=True)
    path.write_text(FAKE_DOCKER)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


class RecordingReporter:
    """In-memory DeploymentReporter."""

    def __init__(self, watched_workspace: Optional[Path] = None):
        self.calls: List[Tuple[int, DeploymentStatus, List[Dict[str, str]]]] = []
        self.watched_workspace = watched_workspace
        self.workspace_seen: List[bool] = []

    async def report(self, deployment_id, status, logs) -> bool:
        self.calls.append((deployment_id, status, logs))
        if self.watched_workspace is not None:
            self.workspace_seen.append(self.watched_workspace.exists())
        return True

    @property
    def statuses(self) -> List[DeploymentStatus]:
        return [status for _, status, _ in self.calls]

    @property
    def final_logs(self) -> List[Dict[str, str]]:
        return self.calls[-1][2]


class FakeExecutor(StackExecutor):
    """StackExecutor that never spawns a process."""

    def __init__(self, stdout: str = "", stderr: str = "", returncode: int = 0):
        super().__init__("docker")
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode
        self.calls: List[Tuple[Path, str]] = []
        self.files_seen: List[List[str]] = []

    async def deploy(self, workspace_path, stack_name):
        workspace_path = Path(workspace_path)
        self.calls.append((workspace_path, stack_name))
        self.files_seen.append(sorted(p.name for p in workspace_path.iterdir()))
        if self.returncode != 0:
            raise ExecutionError(
                f"exit status {self.returncode}",
                stdout=self.stdout,
                stderr=self.stderr,
                returncode=self.returncode,
            )
        return ExecutionResult(stdout=self.stdout, stderr=self.stderr, returncode=0)
