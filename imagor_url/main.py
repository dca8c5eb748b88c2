from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from imagor_url.api.health import API_VERSION, router as health_router
from imagor_url.api.urls import router as urls_router
from imagor_url.core.config import settings
from imagor_url.core.errors import ImagorUrlError
from imagor_url.core.logging import get_logger, setup_logging
from imagor_url.services.client import builder_registry

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for the FastAPI application."""
    setup_logging()
    logger.info(
        f"Starting imagor URL service for {settings.imagor_server or '<unconfigured>'} "
        f"(signed: {bool(settings.imagor_secret)}, backend: {settings.imagor_signing_backend})"
    )

    yield

    dropped = builder_registry.clear()
    logger.info(f"Shutting down imagor URL service, dropped {dropped} builders")


async def imagor_error_handler(request: Request, exc: ImagorUrlError) -> JSONResponse:
    """Render library errors with their own status code."""
    logger.warning(f"{exc.error_code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="imagor URL API",
        description="""
        # imagor URL API

        Generates signed, path based imagor URLs (resize, crop, format conversion, filters)
        so that clients never need to hold the imagor secret.
        """,
        version=API_VERSION,
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "urls",
                "description": "Operations for generating imagor URLs"
            },
            {
                "name": "health",
                "description": "Operations for checking the configuration of the service"
            },
        ],
    )

    app.add_exception_handler(ImagorUrlError, imagor_error_handler)

    app.include_router(urls_router, prefix=settings.api_prefix)
    app.include_router(health_router, prefix=settings.api_prefix)

    return app


app = create_app()
