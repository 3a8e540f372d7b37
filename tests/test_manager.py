"""Tests for launching deployments in the background."""

import asyncio
from pathlib import Path

import pytest

from deploy_agent.deploy.manager import DeploymentManager
from deploy_agent.deploy.models import DeploymentRequest, DeploymentStatus
from deploy_agent.deploy.pipeline import DeploymentPipeline
from deploy_agent.deploy.workspace import WorkspaceManager

from conftest import FakeExecutor, RecordingReporter


class GatedExecutor(FakeExecutor):
    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()
        self.started = asyncio.Event()

    async def deploy(self, workspace_path, stack_name):
        self.started.set()
        await self.gate.wait()
        return await super().deploy(workspace_path, stack_name)


def _request(deployment_id: int = 42) -> DeploymentRequest:
    return DeploymentRequest(deploymentId=deployment_id, name="web", dockerCompose="version: '3'")


@pytest.mark.asyncio
async def test_submit_returns_before_deployment_finishes(tmp_path: Path):
    executor = GatedExecutor()
    reporter = RecordingReporter()
    manager = DeploymentManager(DeploymentPipeline(WorkspaceManager(tmp_path), executor, reporter))

    task = manager.submit(_request())
    await asyncio.wait_for(executor.started.wait(), timeout=5)

    assert not task.done()
    assert manager.active == 1

    executor.gate.set()
    assert await task == DeploymentStatus.DEPLOYED
    assert manager.active == 0
    assert reporter.statuses[-1] == DeploymentStatus.DEPLOYED


@pytest.mark.asyncio
async def test_many_deployments_run_concurrently(tmp_path: Path):
    executor = GatedExecutor()
    manager = DeploymentManager(DeploymentPipeline(WorkspaceManager(tmp_path), executor, RecordingReporter()))

    tasks = [manager.submit(_request(i)) for i in range(5)]
    await asyncio.sleep(0.1)
    assert manager.active == 5

    executor.gate.set()
    results = await asyncio.gather(*tasks)
    assert results == [DeploymentStatus.DEPLOYED] * 5


@pytest.mark.asyncio
async def test_crashing_pipeline_does_not_escape_task(tmp_path: Path):
    class CrashingPipeline:
        async def run(self, request):
            raise RuntimeError("reporter exploded")

    manager = DeploymentManager(CrashingPipeline())
    assert await manager.submit(_request()) == DeploymentStatus.FAILED


@pytest.mark.asyncio
async def test_shutdown_waits_for_in_flight(tmp_path: Path):
    executor = GatedExecutor()
    reporter = RecordingReporter()
    manager = DeploymentManager(DeploymentPipeline(WorkspaceManager(tmp_path), executor, reporter))

    task = manager.submit(_request())
    await asyncio.wait_for(executor.started.wait(), timeout=5)
    asyncio.get_event_loop().call_later(0.1, executor.gate.set)

    await manager.shutdown(grace_seconds=5)

    assert task.done()
    assert reporter.statuses[-1] == DeploymentStatus.DEPLOYED


@pytest.mark.asyncio
async def test_shutdown_cancels_after_grace(tmp_path: Path):
    executor = GatedExecutor()
    reporter = RecordingReporter()
    manager = DeploymentManager(DeploymentPipeline(WorkspaceManager(tmp_path), executor, reporter))

    task = manager.submit(_request())
    await asyncio.wait_for(executor.started.wait(), timeout=5)

    await manager.shutdown(grace_seconds=0.1)

    assert task.cancelled()
    assert reporter.statuses[-1] == DeploymentStatus.FAILED
    assert not (tmp_path / "deploy-42").exists()


def test_from_settings_wires_collaborators(settings):
    manager = DeploymentManager.from_settings(settings)
    pipeline = manager.pipeline
    assert str(pipeline.workspaces.root) == settings.workspace_root
    assert pipeline.executor.docker_binary == "docker"
    assert pipeline.executor.timeout is None
    assert pipeline.reporter.client.base_url == "http://admin.test"
