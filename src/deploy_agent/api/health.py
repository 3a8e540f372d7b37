"""Health check endpoint."""

from typing import Dict

from fastapi import APIRouter

router = APIRouter()


@router.get("/health", response_model=Dict[str, str])
async def health_check() -> Dict[str, str]:
    """Liveness check; always ok while the process serves requests."""
    return {"status": "ok"}
