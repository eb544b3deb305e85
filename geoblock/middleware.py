from starlette.datastructures import Headers
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send
from starlette.websockets import WebSocketClose

from geoblock.address import classify, iter_candidate_addresses
from geoblock.cache import LookupCache
from geoblock.clients.base import BaseCountryLookupClient
from geoblock.clients.template_client import TemplateCountryClient
from geoblock.config import validate_config
from geoblock.errors import ResolutionError
from geoblock.logger import decision_context, logger
from geoblock.models.common import AddressClass, ClientAddress, Decision, Verdict, VerdictReason
from geoblock.models.config import GeoBlockConfig
from geoblock.policy import decide

# Policy violation; servers answer a websocket closed before accept with HTTP 403.
WS_POLICY_VIOLATION = 1008


class GeoBlockMiddleware:
    """ASGI middleware admitting only requests whose client address resolves to an allowed country.

    Usage:
        app.add_middleware(GeoBlockMiddleware, config=GeoBlockConfig(api=..., countries=["CH"]))

    - The configuration is validated here, so an invalid one fails the construction.
    - Private addresses pass only with `allow_local_requests`.
    - Public addresses are resolved through the lookup client (and the cache when
      `cache_ttl_seconds` is set); a failed lookup denies the request.
    - Denied HTTP requests get a bare 403, whatever the reason; denied websockets are
      closed before being accepted.

    The forwarding header is trusted, so the application must only be reachable
    through a proxy that sets it.

    A client disconnect does not abort an outstanding lookup: the middleware does not
    read `http.disconnect` (that would consume the body meant for the application), so
    the lookup runs until it answers or hits `api_timeout_seconds`.
    """

    def __init__(
        self,
        app: ASGIApp,
        config: GeoBlockConfig,
        lookup_client: BaseCountryLookupClient | None = None,
        cache: LookupCache | None = None,
    ) -> None:
        self.app = app
        self.config = validate_config(config)
        self.lookup_client = lookup_client or TemplateCountryClient(self.config)
        if cache is None and self.config.cache_enabled:
            cache = LookupCache(ttl_seconds=self.config.cache_ttl_seconds, max_size=self.config.cache_max_size)
        self.cache = cache

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self.app(scope, self._wrap_lifespan_receive(receive), send)
            return

        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        verdict = await self.check(scope)
        if verdict.allowed:
            await self.app(scope, receive, send)
            return

        if scope["type"] == "websocket":
            await WebSocketClose(code=WS_POLICY_VIOLATION)(scope, receive, send)
        else:
            await PlainTextResponse("Forbidden", status_code=403)(scope, receive, send)

    async def check(self, scope: Scope) -> Verdict:
        """Decide whether the request described by `scope` may reach the application.

        Every candidate client address must be allowed; the first denial wins.
        """
        headers = Headers(scope=scope)
        client = scope.get("client")
        client_host = client[0] if client else None

        verdict = None
        for candidate in iter_candidate_addresses(headers, client_host, self.config.forwarded_header):
            verdict = await self.evaluate(candidate)
            if not verdict.allowed:
                return verdict

        if verdict is None:
            logger.info(
                f"Request denied, no client address path={scope.get('path')}",
                extra=decision_context(None, VerdictReason.invalid_address.value),
            )
            return Verdict(decision=Decision.deny, reason=VerdictReason.invalid_address)
        return verdict

    async def evaluate(self, raw_ip: str) -> Verdict:
        """Classify, resolve and decide one client address."""
        address = classify(raw_ip)

        country = None
        if address.classification is AddressClass.public:
            country = await self._lookup_country(address)

        verdict = decide(address, country, self.config)
        self._log_verdict(address, verdict)
        return verdict

    async def aclose(self) -> None:
        await self.lookup_client.aclose()

    async def _lookup_country(self, address: ClientAddress) -> str | None:
        try:
            if self.cache is not None:
                return await self.cache.get_or_resolve(address.ip, self.lookup_client.resolve_country)
            return await self.lookup_client.resolve_country(address.ip)
        except ResolutionError as exc:
            logger.warning(
                f"Country lookup failed error_type={type(exc).__name__} error={exc}",
                extra=decision_context(address.ip),
            )
            return None

    def _log_verdict(self, address: ClientAddress, verdict: Verdict) -> None:
        message = f"country={verdict.country}"
        extra = decision_context(verdict.ip, verdict.reason.value)
        if not verdict.allowed:
            logger.info(f"Request denied {message}", extra=extra)
        elif address.classification is AddressClass.private:
            if self.config.log_local_requests:
                logger.info(f"Local request allowed {message}", extra=extra)
            else:
                logger.debug(f"Local request allowed {message}", extra=extra)
        elif self.config.log_allowed_requests:
            logger.info(f"Request allowed {message}", extra=extra)
        else:
            logger.debug(f"Request allowed {message}", extra=extra)

    def _wrap_lifespan_receive(self, receive: Receive) -> Receive:
        async def wrapped_receive() -> Message:
            message = await receive()
            if message["type"] == "lifespan.shutdown":
                await self.aclose()
            return message

        return wrapped_receive
