from fastapi import APIRouter, status

from imagor_url.core.config import settings
from imagor_url.schemas.health import HealthResponse
from imagor_url.services.client import builder_registry

# Create a router for health check endpoints
router = APIRouter(tags=["health"])

API_VERSION = "1.0.0"


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="""
    Report whether URL generation is configured.

    ## Response
    - status: ok, or error when no imagor server is configured
    - services.imagor: server address, whether URLs are signed, signing backend
    - services.builders: number of cached builder instances
    """,
)
async def health_check() -> HealthResponse:
    """Check configuration; the secret itself is never reported."""
    configured = bool(settings.imagor_server.strip())
    return HealthResponse(
        status="ok" if configured else "error",
        version=API_VERSION,
        services={
            "imagor": {
                "status": "ok" if configured else "not_configured",
                "server": settings.imagor_server,
                "signed": bool(settings.imagor_secret),
                "signing_backend": settings.imagor_signing_backend,
            },
            "builders": len(builder_registry),
        },
    )
