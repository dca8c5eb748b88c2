import json
import threading
from typing import Dict, Optional

from imagor_url.core.config import Settings, settings
from imagor_url.core.logging import get_logger
from imagor_url.services.builder import BuilderConfig, ImagorUrlBuilder
from imagor_url.services.signing import Signer

logger = get_logger("client")


class BuilderRegistry:
    """Hands out one shared builder per (server, secret) pair."""

    def __init__(self, signer: Optional[Signer] = None):
        self._instances: Dict[str, ImagorUrlBuilder] = {}
        self._lock = threading.Lock()
        self._signer = signer

    @staticmethod
    def _instance_key(server: str, secret: Optional[str]) -> str:
        return json.dumps({"server": server, "secret": secret or None})

    def get(self, server: str, secret: Optional[str] = None, cache_ttl_seconds: int = 0,
            default_filters=()) -> ImagorUrlBuilder:
        """Look up the builder for a configuration, creating it on first use.

        Without a secret the builder runs in unsafe mode and every URL it
        produces is unsigned.
        """
        key = self._instance_key(server, secret)
        with self._lock:
            builder = self._instances.get(key)
            if builder is None:
                if not secret:
                    logger.warning("No imagor secret provided. Using unsafe mode (no URL signature).")
                config = BuilderConfig(
                    server=server,
                    secret=secret or None,
                    default_filters=tuple(default_filters),
                    cache_ttl_seconds=cache_ttl_seconds,
                    unsafe=not secret,
                )
                builder = ImagorUrlBuilder(config, signer=self._signer)
                self._instances[key] = builder
                logger.info(f"Created imagor URL builder for {config.base_url}")
            return builder

    def from_settings(self, app_settings: Optional[Settings] = None) -> ImagorUrlBuilder:
        """Builder for the server configured through the environment."""
        app_settings = app_settings or settings
        return self.get(
            app_settings.imagor_server,
            app_settings.imagor_secret,
            cache_ttl_seconds=app_settings.imagor_cache_ttl_seconds,
            default_filters=app_settings.default_filter_list(),
        )

    def clear(self) -> int:
        """Forget all builders; returns how many were dropped."""
        with self._lock:
            count = len(self._instances)
            self._instances.clear()
        return count

    def __len__(self) -> int:
        return len(self._instances)


# Create a global instance
builder_registry = BuilderRegistry()


def imagor_client(server: str, secret: Optional[str] = None) -> ImagorUrlBuilder:
    """
    Convenience function returning the shared builder for a configuration.

    Args:
        server: Base address of the imagor server
        secret: Signing secret; omit to get an unsafe builder

    Returns:
        The cached ImagorUrlBuilder instance
    """
    return builder_registry.get(server, secret)


def clear_imagor_client_instances() -> int:
    """
    Convenience function clearing all cached builders, mainly for tests.
    """
    return builder_registry.clear()
