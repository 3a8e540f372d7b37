"""Models for deployment requests, logs and status."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field


class DeploymentStatus(str, Enum):
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not DeploymentStatus.DEPLOYING


class LogLevel(str, Enum):
    INFO = "info"
    ERROR = "error"


class DeploymentRequest(BaseModel):
    """Inbound deployment request as sent by the admin panel."""

    model_config = ConfigDict(frozen=True)

    deploymentId: int
    name: str = Field(..., min_length=1, pattern=r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
    dockerCompose: str = Field(..., min_length=1)
    envVars: Dict[str, str] = Field(default_factory=dict)


class DeploymentLogEntry(BaseModel):
    """One line of a deployment log as reported to the admin panel."""

    model_config = ConfigDict(frozen=True)

    level: LogLevel
    message: str


class DeploymentAccepted(BaseModel):
    message: str
    deploymentId: str


class DeploymentLog:
    """Append-only log and status of one deployment attempt.

    The status starts at ``deploying`` and may move once to a terminal state.
    Nothing can be appended after that.
    """

    def __init__(self) -> None:
        self._entries: List[DeploymentLogEntry] = []
        self._status = DeploymentStatus.DEPLOYING

    @property
    def status(self) -> DeploymentStatus:
        return self._status

    @property
    def entries(self) -> List[DeploymentLogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def _check_open(self) -> None:
        if self._status.is_terminal:
            raise RuntimeError(f"Deployment log is closed (status={self._status.value})")

    def info(self, message: str) -> None:
        self._check_open()
        self._entries.append(DeploymentLogEntry(level=LogLevel.INFO, message=message))

    def error(self, message: str) -> None:
        self._check_open()
        self._entries.append(DeploymentLogEntry(level=LogLevel.ERROR, message=message))

    def finish(self, status: DeploymentStatus) -> None:
        """Move to a terminal status."""
        self._check_open()
        if not status.is_terminal:
            raise ValueError(f"{status.value} is not a terminal status")
        self._status = status

    def snapshot(self) -> List[Dict[str, str]]:
        """Full log so far, serialized for the control plane."""
        return [entry.model_dump(mode="json") for entry in self._entries]
