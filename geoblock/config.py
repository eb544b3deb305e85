import re

from geoblock.errors import (
    EmptyCountryListError,
    InvalidApiTemplateError,
    InvalidConfigValueError,
    InvalidCountryCodeError,
)
from geoblock.models.config import IP_PLACEHOLDER, GeoBlockConfig

COUNTRY_CODE_RE = re.compile(r"^[A-Z]{2}$")


def validate_config(config: GeoBlockConfig) -> GeoBlockConfig:
    """Check the semantic constraints of a configuration and return it unchanged.

    Raises a `ConfigError` subclass on the first violation found:
    - `InvalidApiTemplateError`: the API template is empty or has no {ip} placeholder.
    - `EmptyCountryListError`: the allow-list is empty.
    - `InvalidCountryCodeError`: an allow-list entry is not a two-letter code.
    - `InvalidConfigValueError`: timeout, cache TTL or cache size is not positive.
    """
    if not config.api:
        raise InvalidApiTemplateError("No lookup API template given.")
    if IP_PLACEHOLDER not in config.api:
        raise InvalidApiTemplateError(f"Lookup API template {config.api!r} has no {IP_PLACEHOLDER} placeholder.")

    if not config.countries:
        raise EmptyCountryListError("No allowed country code given.")
    for code in config.countries:
        if not COUNTRY_CODE_RE.match(code):
            raise InvalidCountryCodeError(f"{code!r} is not a two-letter country code.")

    if config.api_timeout_seconds <= 0:
        raise InvalidConfigValueError("api_timeout_seconds must be greater than zero.")
    if config.cache_ttl_seconds is not None and config.cache_ttl_seconds <= 0:
        raise InvalidConfigValueError("cache_ttl_seconds must be greater than zero or unset.")
    if config.cache_max_size < 1:
        raise InvalidConfigValueError("cache_max_size must be at least 1.")

    if not config.country_field:
        raise InvalidConfigValueError("country_field must not be empty.")
    if not config.forwarded_header:
        raise InvalidConfigValueError("forwarded_header must not be empty.")

    return config
