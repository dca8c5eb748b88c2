from typing import Any, Dict

from pydantic import BaseModel, Field


class ImagorMetadata(BaseModel):
    """JSON returned by imagor for a ``meta`` request."""
    width: int = Field(..., description="Image width in pixels")
    height: int = Field(..., description="Image height in pixels")
    format: str = Field(..., description="Detected image format")
    content_type: str = Field(default="", description="MIME type of the image")
    orientation: int = Field(default=1, description="EXIF orientation")
    pages: int = Field(default=1, description="Number of pages or frames")
    bands: int = Field(default=0, description="Number of colour bands")
    exif: Dict[str, Any] = Field(default_factory=dict, description="Raw EXIF values")

    model_config = {
        "json_schema_extra": {
            "example": {
                "width": 800,
                "height": 600,
                "format": "jpeg",
                "content_type": "image/jpeg",
                "orientation": 1,
                "pages": 1,
                "bands": 3,
                "exif": {}
            }
        }
    }
