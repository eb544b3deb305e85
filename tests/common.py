import asyncio
from collections.abc import Callable
from typing import Any

import httpx

from geoblock.clients.base import BaseCountryLookupClient
from geoblock.errors import LookupUnreachableError
from geoblock.models.config import GeoBlockConfig

API_TEMPLATE = "https://get.geojs.io/v1/ip/country/{ip}"

CA = "99.220.109.148"
CH = "82.220.110.18"
PRIVATE_RANGE = "192.168.1.1"
INVALID = "192.168.1.X"

COUNTRIES = {CA: "CA", CH: "CH"}


def make_config(**overrides: Any) -> GeoBlockConfig:
    """Build a config with sensible test defaults (countries=["CH"], no local requests)."""
    options: dict[str, Any] = {"api": API_TEMPLATE, "countries": ["CH"], "allow_local_requests": False}
    options.update(overrides)
    return GeoBlockConfig(**options)


class FakeLookupClient(BaseCountryLookupClient):
    """Test double resolving addresses from a fixed mapping.

    Unknown addresses raise the configured error (LookupUnreachableError by default).
    """

    def __init__(
        self,
        countries: dict[str, str] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self._countries = COUNTRIES if countries is None else countries
        self._error = error
        self._delay = delay
        self.calls: list[str] = []
        self.closed = False

    async def resolve_country(self, ip: str) -> str:
        self.calls.append(ip)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        try:
            return self._countries[ip]
        except KeyError:
            raise LookupUnreachableError(f"No country known for {ip}") from None

    async def aclose(self) -> None:
        self.closed = True


def make_mock_http_client(handler: Callable[[httpx.Request], Any]) -> httpx.AsyncClient:
    """httpx.AsyncClient answering every request through `handler`."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))
