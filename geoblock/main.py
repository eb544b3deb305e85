from fastapi import FastAPI, status

from geoblock.clients.base import BaseCountryLookupClient
from geoblock.config import validate_config
from geoblock.exception_handlers import unhandled_exception_handler
from geoblock.logger import logger
from geoblock.middleware import GeoBlockMiddleware
from geoblock.models.config import GeoBlockConfig
from geoblock.models.response_models import HealthResponse
from geoblock.settings import GeoBlockSettings


def create_app(
    config: GeoBlockConfig | None = None,
    lookup_client: BaseCountryLookupClient | None = None,
) -> FastAPI:
    """Build the application served behind the geoblock middleware.

    - If `config` is omitted it is read from GEOBLOCK_* environment variables.
    - The configuration is validated before the app is returned, so a bad one stops
      the process at startup instead of failing on the first request.
    """
    if config is None:
        config = GeoBlockSettings().to_config()
    config = validate_config(config)

    app = FastAPI(
        title="GeoBlock Service",
        version="0.1.0",
        description="Country-based access control in front of an HTTP application.",
    )
    app.add_middleware(GeoBlockMiddleware, config=config, lookup_client=lookup_client)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get(
        "/health",
        tags=["health"],
        response_model=HealthResponse,
        status_code=status.HTTP_200_OK,
        summary="Health check",
    )
    async def health() -> HealthResponse:
        """Basic health check endpoint."""
        return HealthResponse(status="ok")

    logger.info(
        "Created GeoBlock Service "
        f"countries={','.join(config.countries)} allow_local_requests={config.allow_local_requests} "
        f"cache_ttl_seconds={config.cache_ttl_seconds}"
    )
    return app
