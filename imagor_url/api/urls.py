from fastapi import APIRouter

from imagor_url.core.errors import HTTP_400_BAD_REQUEST, ImagorUrlError
from imagor_url.core.logging import get_logger
from imagor_url.schemas.url import BatchUrlRequest, BatchUrlResponse, UrlRequest, UrlResponse
from imagor_url.services.client import builder_registry

# Create a router for URL generation endpoints
router = APIRouter(tags=["urls"])

logger = get_logger("urls_api")

ERROR_EXAMPLE = {
    "error": True,
    "error_code": "signing_precondition_error",
    "message": "Signing key is missing for ImagorUrlBuilder. Either configure a secret or call unsafe() before get_url()."
}


def build_url(request: UrlRequest) -> str:
    builder = builder_registry.from_settings()
    with builder.exclusive():
        try:
            return request.apply(builder).get_url()
        except ImagorUrlError:
            # The builder is shared, never leave a half-built request behind
            builder.reset()
            raise


@router.post(
    "/urls",
    response_model=UrlResponse,
    summary="Generate an imagor URL",
    description="""
    Build an imagor URL for the configured server and sign it with the configured secret.

    ## Notes
    - Signing happens server side so the secret never reaches the browser
    - Without a configured secret every URL is produced in unsafe mode
    - `format(jpeg)` and `quality(70)` are added unless the request sets them
    """,
    responses={
        HTTP_400_BAD_REQUEST: {
            "description": "Invalid builder arguments",
            "content": {"application/json": {"example": ERROR_EXAMPLE}}
        }
    },
)
def create_url(request: UrlRequest) -> UrlResponse:
    """Generate a single URL."""
    return UrlResponse(url=build_url(request))


@router.post(
    "/urls/batch",
    response_model=BatchUrlResponse,
    summary="Generate several imagor URLs",
    description="Build up to 100 URLs in one call. URLs are returned in request order.",
    responses={
        HTTP_400_BAD_REQUEST: {
            "description": "Invalid builder arguments in one of the items",
            "content": {"application/json": {"example": ERROR_EXAMPLE}}
        }
    },
)
def create_urls(request: BatchUrlRequest) -> BatchUrlResponse:
    """Generate a list of URLs."""
    urls = [build_url(item) for item in request.items]
    logger.info(f"Generated {len(urls)} imagor URLs")
    return BatchUrlResponse(urls=urls)
