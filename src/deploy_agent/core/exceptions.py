"""Custom exceptions for the deploy agent."""

from typing import Optional


class DeployAgentError(Exception):
    """Base exception for all agent errors."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class ConfigError(DeployAgentError):
    """Configuration could not be loaded or is invalid. Fatal at startup."""
    pass


class WorkspaceError(DeployAgentError):
    """Deployment workspace could not be created or written."""
    pass


class ExecutionError(DeployAgentError):
    """The orchestration command failed to start or exited non-zero."""

    def __init__(
        self,
        message: str,
        *,
        stdout: str = "",
        stderr: str = "",
        returncode: Optional[int] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message, code)
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode


class ReportingError(DeployAgentError):
    """Control plane did not accept a report."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthenticationError(DeployAgentError):
    """Inbound request carried a missing or wrong bearer token."""
    pass
