"""Deploy API: accepts a deployment and runs it in the background."""

from __future__ import annotations

import hmac
import json

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import ValidationError

from deploy_agent.core.config import Settings
from deploy_agent.core.exceptions import AuthenticationError
from deploy_agent.deploy.manager import DeploymentManager
from deploy_agent.deploy.models import DeploymentAccepted, DeploymentRequest


router = APIRouter()
logger = structlog.get_logger()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_deploy_manager(request: Request) -> DeploymentManager:
    manager = getattr(request.app.state, "deployment_manager", None)
    if manager is None:
        raise RuntimeError("DeploymentManager not initialized")
    return manager


def require_bearer(auth_header: str | None, api_key: str) -> None:
    """The header must be exactly ``Bearer <api_key>``."""
    expected = f"Bearer {api_key}"
    if not auth_header or not hmac.compare_digest(auth_header.encode(), expected.encode()):
        raise AuthenticationError("Unauthorized", code="invalid_bearer")


async def parse_deploy_request(req: Request) -> DeploymentRequest:
    try:
        body = await req.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Invalid request body")
    try:
        return DeploymentRequest.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid request body: {exc.error_count()} validation error(s)",
        )


@router.post("/deploy", response_model=DeploymentAccepted, status_code=202)
async def deploy_endpoint(
    req: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    settings: Settings = Depends(get_settings),
    manager: DeploymentManager = Depends(get_deploy_manager),
):
    require_bearer(authorization, settings.api_key)
    payload = await parse_deploy_request(req)

    logger.info(
        "Received deployment request",
        deploymentId=payload.deploymentId,
        stack=payload.name,
        env_vars=len(payload.envVars),
    )
    manager.submit(payload)
    return DeploymentAccepted(message="Deployment initiated", deploymentId=str(payload.deploymentId))
