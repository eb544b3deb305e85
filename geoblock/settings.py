from pydantic_settings import BaseSettings, SettingsConfigDict

from geoblock.models.config import GeoBlockConfig, ResponseFormat


class GeoBlockSettings(BaseSettings):
    """Environment-driven settings for the runnable application.

    Every field maps to a GEOBLOCK_* variable, e.g.:
        GEOBLOCK_API=https://get.geojs.io/v1/ip/country/{ip}
        GEOBLOCK_COUNTRIES=CH,DE
        GEOBLOCK_ALLOW_LOCAL_REQUESTS=true
    """

    model_config = SettingsConfigDict(env_prefix="GEOBLOCK_")

    api: str
    # Comma-separated list of country codes.
    countries: str
    allow_local_requests: bool = False
    api_timeout_seconds: float = 2.0
    cache_ttl_seconds: float | None = None
    cache_max_size: int = 1024
    response_format: ResponseFormat = ResponseFormat.text
    country_field: str = "country"
    forwarded_header: str = "X-Forwarded-For"
    log_allowed_requests: bool = False
    log_local_requests: bool = False
    log_api_requests: bool = False

    def to_config(self) -> GeoBlockConfig:
        return GeoBlockConfig(**self.model_dump())
