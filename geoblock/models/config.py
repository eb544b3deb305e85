from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

IP_PLACEHOLDER = "{ip}"


class ResponseFormat(str, Enum):
    """Body formats understood when reading the lookup service response."""

    text = "text"
    json = "json"


class GeoBlockConfig(BaseModel):
    """Immutable middleware configuration.

    Instances only normalize their input here; the semantic checks (placeholder present,
    non-empty allow-list, sane numbers) live in `geoblock.config.validate_config` so that
    they surface as `ConfigError` subclasses rather than pydantic validation errors.
    """

    model_config = ConfigDict(frozen=True)

    api: str = Field(
        description="Lookup URL template; every {ip} is replaced by the client address.",
        examples=["https://get.geojs.io/v1/ip/country/{ip}"],
    )
    countries: tuple[str, ...] = Field(
        description="ISO 3166-1 alpha-2 codes allowed to reach the downstream application.",
        examples=[["CH", "DE"]],
    )
    allow_local_requests: bool = False
    api_timeout_seconds: float = 2.0
    # None disables caching: every public address then triggers a lookup.
    cache_ttl_seconds: float | None = None
    cache_max_size: int = 1024
    response_format: ResponseFormat = ResponseFormat.text
    country_field: str = "country"
    forwarded_header: str = "X-Forwarded-For"
    log_allowed_requests: bool = False
    log_local_requests: bool = False
    log_api_requests: bool = False

    @field_validator("api", mode="before")
    @classmethod
    def _strip_api(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("countries", mode="before")
    @classmethod
    def _normalize_countries(cls, value: Any) -> Any:
        """Upper-case and strip entries, dropping blank ones.

        A single string is accepted as a comma-separated list ("CH, de").
        """
        if value is None:
            return ()
        if isinstance(value, str):
            value = value.split(",")
        return tuple(str(code).strip().upper() for code in value if str(code).strip())

    @property
    def allowed_countries(self) -> frozenset[str]:
        return frozenset(self.countries)

    @property
    def cache_enabled(self) -> bool:
        return self.cache_ttl_seconds is not None
