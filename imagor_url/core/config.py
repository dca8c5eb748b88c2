import os
from typing import List

from pydantic import BaseModel, Field, ConfigDict
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "t")


class Settings(BaseModel):
    """Application settings."""
    # Imagor server configuration
    imagor_server: str = Field(
        default_factory=lambda: os.getenv("IMAGOR_SERVER", "")
    )
    imagor_secret: str = Field(
        default_factory=lambda: os.getenv("IMAGOR_SECRET", "")
    )
    imagor_cache_ttl_seconds: int = Field(
        default_factory=lambda: int(os.getenv("IMAGOR_CACHE_TTL_SECONDS", "0"))
    )
    # Colon separated, e.g. "strip_exif():progressive()"
    imagor_default_filters: str = Field(
        default_factory=lambda: os.getenv("IMAGOR_DEFAULT_FILTERS", "")
    )

    # Signing configuration
    imagor_signing_backend: str = Field(
        default_factory=lambda: os.getenv("IMAGOR_SIGNING_BACKEND", "hmac").lower()
    )
    imagor_signing_exposed: bool = Field(
        default_factory=lambda: _env_bool("IMAGOR_SIGNING_EXPOSED", "false")
    )

    # Metadata retrieval
    imagor_metadata_timeout: float = Field(
        default_factory=lambda: float(os.getenv("IMAGOR_METADATA_TIMEOUT", "10.0"))
    )

    # API settings
    api_prefix: str = ""

    # Server settings
    workers: int = Field(
        default_factory=lambda: int(os.getenv("WORKERS", "1"))
    )

    # Logging Configuration
    log_level: str = Field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO")
    )

    model_config = ConfigDict(validate_assignment=True)

    def default_filter_list(self) -> List[str]:
        """Split the configured default filters into directives."""
        if not self.imagor_default_filters:
            return []
        # Directive arguments never contain "):" so split on the closing paren
        directives = []
        for chunk in self.imagor_default_filters.split("):"):
            chunk = chunk.strip()
            if not chunk:
                continue
            directives.append(chunk if chunk.endswith(")") else f"{chunk})")
        return directives


settings = Settings()
