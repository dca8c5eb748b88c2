from typing import Any, Dict

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""
    status: str = Field(
        ...,
        description="Service status"
    )
    version: str = Field(
        ...,
        description="API version"
    )
    services: Dict[str, Any] = Field(
        ...,
        description="Status of individual components"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "ok",
                "version": "1.0.0",
                "services": {
                    "imagor": {
                        "status": "ok",
                        "server": "https://img.example.com",
                        "signed": True,
                        "signing_backend": "hmac"
                    },
                    "builders": 1
                }
            }
        }
    }
