import asyncio
import re
from typing import Any

import httpx

from geoblock.clients.base import BaseCountryLookupClient
from geoblock.errors import LookupTimeoutError, LookupUnreachableError, MalformedLookupResponseError
from geoblock.logger import decision_context, logger
from geoblock.models.config import IP_PLACEHOLDER, GeoBlockConfig, ResponseFormat

COUNTRY_CODE_RE = re.compile(r"^[A-Za-z]{2}$")


class TemplateCountryClient(BaseCountryLookupClient):
    """Client for any HTTP lookup service addressed through a URL template.

    The configured template (e.g. https://get.geojs.io/v1/ip/country/{ip}) gets the
    client address substituted for {ip}. The response body is either the bare country
    code as plain text or a JSON object holding it under `country_field`.

    The underlying httpx.AsyncClient is created once and shared by every request;
    call `aclose` on shutdown.
    """

    def __init__(self, config: GeoBlockConfig, client: httpx.AsyncClient | None = None) -> None:
        self._api_template = config.api
        self._timeout_seconds = config.api_timeout_seconds
        self._response_format = config.response_format
        self._country_field = config.country_field
        self._log_requests = config.log_api_requests
        self._client = client or httpx.AsyncClient(timeout=self._timeout_seconds)

    def build_url(self, ip: str) -> str:
        return self._api_template.replace(IP_PLACEHOLDER, ip)

    async def resolve_country(self, ip: str) -> str:
        """Look up the country code of a public IP address."""
        url = self.build_url(ip)
        if self._log_requests:
            logger.info(f"Requesting country lookup url={url}", extra=decision_context(ip))

        try:
            response = await asyncio.wait_for(self._client.get(url), timeout=self._timeout_seconds)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise LookupTimeoutError(
                f"Country lookup for {ip} timed out after {self._timeout_seconds}s."
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            # InvalidURL is raised while building the request and is not an HTTPError.
            raise LookupUnreachableError(f"Request to lookup service failed: {repr(exc)}") from exc

        self._handle_http_errors(response)

        if self._response_format is ResponseFormat.json:
            value = self._extract_json_field(response)
        else:
            value = response.text

        return self._normalize_country(value)

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _handle_http_errors(response: httpx.Response) -> None:
        """Map any non-2xx status to an unreachable lookup service."""
        status_code = response.status_code
        if not 200 <= status_code < 300:
            raise LookupUnreachableError(f"Lookup service returned HTTP {status_code}: {response.text[:200]}")

    def _extract_json_field(self, response: httpx.Response) -> Any:
        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedLookupResponseError(f"Failed to decode lookup response as JSON: {exc}") from exc

        if not isinstance(data, dict) or self._country_field not in data:
            raise MalformedLookupResponseError(f"Lookup response has no {self._country_field!r} field.")
        return data[self._country_field]

    @staticmethod
    def _normalize_country(value: Any) -> str:
        """Validate a country code taken from the response and upper-case it."""
        if not isinstance(value, str):
            raise MalformedLookupResponseError(f"Unexpected country value in lookup response: {value!r}")

        country = value.strip()
        if not COUNTRY_CODE_RE.match(country):
            raise MalformedLookupResponseError(f"Unexpected country value in lookup response: {country[:50]!r}")
        return country.upper()
