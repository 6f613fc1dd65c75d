from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..config import settings
from ..services.token_identity import TokenIdentityService
from .resolve import get_service

router = APIRouter()


@router.get("/healthz")
async def health_check(service: TokenIdentityService = Depends(get_service)) -> Dict[str, Any]:
    """Health check endpoint that verifies upstream status"""

    provider = service.provider
    provider_status = {provider.name: await provider.health_check()}

    healthy = sum(1 for status in provider_status.values() if status.get("status") == "healthy")

    return {
        "status": "healthy" if healthy == len(provider_status) else "degraded",
        "providers": provider_status,
        "settings": settings.summary(),
    }
