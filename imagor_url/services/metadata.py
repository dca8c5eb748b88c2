from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx

from imagor_url.core.config import settings
from imagor_url.core.logging import get_logger
from imagor_url.schemas.metadata import ImagorMetadata
from imagor_url.services.builder import ImagorUrlBuilder

logger = get_logger("metadata")


class MetadataFetcher:
    """Fetches and parses the JSON imagor returns for ``meta`` URLs.

    HTTP failures are not wrapped: ``httpx.HTTPStatusError`` and
    ``httpx.RequestError`` reach the caller unchanged.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        self._client = client
        self._timeout = timeout if timeout is not None else settings.imagor_metadata_timeout

    @asynccontextmanager
    async def _http_client(self) -> AsyncGenerator[httpx.AsyncClient, None]:
        """Yield the injected client, or a short-lived one that is always closed."""
        if self._client is not None:
            yield self._client
            return

        client = httpx.AsyncClient(timeout=self._timeout)
        try:
            yield client
        finally:
            await client.aclose()

    async def fetch(self, url: str) -> ImagorMetadata:
        """GET a metadata URL and parse the response.

        Args:
            url: A URL produced by a builder with ``meta()`` set

        Returns:
            The parsed metadata
        """
        async with self._http_client() as client:
            response = await client.get(url)
            response.raise_for_status()
            metadata = ImagorMetadata.model_validate(response.json())

        logger.debug(f"Fetched metadata: {metadata.width}x{metadata.height} {metadata.format}")
        return metadata

    async def fetch_for(self, builder: ImagorUrlBuilder, src: str) -> ImagorMetadata:
        """Build a ``meta`` URL for ``src`` on ``builder`` and fetch it."""
        with builder.exclusive():
            url = builder.meta().src(src).get_url()
        return await self.fetch(url)
