from typing import List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator

from imagor_url.services.builder import FORMATS, ImagorUrlBuilder

Mode = Literal["fit-in", "full-fit-in", "fit", "full", "stretch", "adaptive", "smart"]

MODE_METHODS = {
    "fit-in": "fit_in",
    "full-fit-in": "full_fit_in",
    "fit": "fit",
    "full": "full",
    "stretch": "stretch",
    "adaptive": "adaptive",
    "smart": "smart",
}


class UrlRequest(BaseModel):
    """Request model for URL generation."""
    src: str = Field(
        ...,
        min_length=1,
        description="Source image path or URL",
        examples=["https://example.com/a.jpg"]
    )
    unsafe: bool = Field(default=False, description="Produce an unsigned URL")
    meta: bool = Field(default=False, description="Request JSON metadata instead of the image")
    modes: List[Mode] = Field(default_factory=list, description="Resize mode flags, in call order")
    width: Optional[Union[int, Literal["orig"]]] = Field(default=None, description="Output width, 0 or 'orig'")
    height: Optional[Union[int, Literal["orig"]]] = Field(default=None, description="Output height, 0 or 'orig'")
    proportion: Optional[float] = Field(default=None, gt=0, description="Scale to a percentage of the original")
    padding: Optional[Tuple[int, int, int, int]] = Field(
        default=None, description="left, top, right, bottom padding in pixels"
    )
    filters: List[str] = Field(default_factory=list, description="Raw filter directives, e.g. 'grayscale()'")
    format: Optional[str] = Field(default=None, description=f"One of: {', '.join(FORMATS)}")
    quality: Optional[int] = Field(default=None, ge=0, le=100)
    strip_metadata: bool = False
    progressive: bool = False

    model_config = {
        "json_schema_extra": {
            "example": {
                "src": "https://example.com/a.jpg",
                "width": 300,
                "height": 200,
                "format": "webp",
                "quality": 80,
                "strip_metadata": True
            }
        }
    }

    @field_validator("filters")
    @classmethod
    def validate_filters(cls, v):
        """Every directive needs the name(args) shape."""
        for directive in v:
            if "(" not in directive or not directive.endswith(")"):
                raise ValueError(f"Malformed filter directive: {directive}")
        return v

    def apply(self, builder: ImagorUrlBuilder) -> ImagorUrlBuilder:
        """Replay the request as chained builder calls."""
        if self.unsafe:
            builder.unsafe()
        if self.meta:
            builder.meta()
        for mode in self.modes:
            getattr(builder, MODE_METHODS[mode])()
        if self.width is not None or self.height is not None:
            builder.dimensions(
                self.width if self.width is not None else 0,
                self.height if self.height is not None else 0,
            )
        if self.proportion is not None:
            builder.proportion(self.proportion)
        if self.padding is not None:
            left, top, right, bottom = self.padding
            builder.padding((left, top), (right, bottom))
        for directive in self.filters:
            builder.filter(directive)
        if self.format is not None:
            builder.format(self.format)
        if self.quality is not None:
            builder.quality(self.quality)
        if self.strip_metadata:
            builder.strip_metadata()
        if self.progressive:
            builder.progressive()
        return builder.src(self.src)


class UrlResponse(BaseModel):
    """Response model for URL generation."""
    url: str = Field(
        ...,
        description="Signed (or unsafe) imagor URL",
        examples=["https://img.example.com/<signature>/300x200/filters:format(webp):quality(80)/https://example.com/a.jpg"]
    )


class BatchUrlRequest(BaseModel):
    """Request model for generating several URLs at once."""
    items: List[UrlRequest] = Field(..., min_length=1, max_length=100)


class BatchUrlResponse(BaseModel):
    """Response model for batch URL generation, in request order."""
    urls: List[str]
