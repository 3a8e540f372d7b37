"""Authenticated JSON client for the admin panel."""

from __future__ import annotations

from typing import Any, Dict

import httpx
import structlog

from deploy_agent.core.config import Settings
from deploy_agent.core.exceptions import ReportingError

logger = structlog.get_logger()

# Response bodies are only kept for logging
MAX_ERROR_BODY_CHARS = 2000


class ControlPlaneClient:
    """Posts reports to the admin panel with a bearer token and bounded timeout."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "ControlPlaneClient":
        return cls(settings.admin_panel_url, settings.api_key, timeout=settings.report_timeout)

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    async def post_json(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        """POST payload to ``{base_url}{path}``.

        Raises ReportingError on transport errors and non-2xx responses. Never
        retries.
        """
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json=payload, headers=self.headers)
        except httpx.HTTPError as exc:
            raise ReportingError(f"POST {url} failed: {exc.__class__.__name__}: {exc}") from exc

        if not resp.is_success:
            body = resp.text[:MAX_ERROR_BODY_CHARS]
            raise ReportingError(
                f"POST {url} returned {resp.status_code}",
                status_code=resp.status_code,
                body=body,
            )
        return resp
