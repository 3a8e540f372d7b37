"""Deployment execution: workspace, stack executor, reporter and pipeline."""

from .models import (
    DeploymentLog,
    DeploymentLogEntry,
    DeploymentRequest,
    DeploymentStatus,
    LogLevel,
)
from .workspace import Workspace, WorkspaceManager
from .executor import ExecutionResult, StackExecutor
from .reporter import DeploymentReporter
from .pipeline import DeploymentPipeline
from .manager import DeploymentManager

__all__ = [
    "DeploymentLog",
    "DeploymentLogEntry",
    "DeploymentRequest",
    "DeploymentStatus",
    "LogLevel",
    "Workspace",
    "WorkspaceManager",
    "ExecutionResult",
    "StackExecutor",
    "DeploymentReporter",
    "DeploymentPipeline",
    "DeploymentManager",
]
