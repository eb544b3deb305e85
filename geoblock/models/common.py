from enum import Enum
from ipaddress import IPv4Address, IPv6Address

from pydantic import BaseModel, ConfigDict


class AddressClass(str, Enum):
    """Classification of a client address string."""

    invalid = "invalid"
    private = "private"
    public = "public"


class ClientAddress(BaseModel):
    """A client address as seen by the middleware.

    `address` is None exactly when `raw` could not be parsed, in which case the
    classification is `invalid`.
    """

    model_config = ConfigDict(frozen=True)

    raw: str
    address: IPv4Address | IPv6Address | None = None
    classification: AddressClass

    @property
    def is_valid(self) -> bool:
        return self.address is not None

    @property
    def ip(self) -> str:
        """Canonical text form of the address, or the raw input when invalid."""
        return str(self.address) if self.address is not None else self.raw


class LookupResult(BaseModel):
    """Outcome of one country lookup, stored whole in the lookup cache."""

    model_config = ConfigDict(frozen=True)

    ip: str
    country: str | None = None
    fetched_at: float
    error: str | None = None


class Decision(str, Enum):
    allow = "allow"
    deny = "deny"


class VerdictReason(str, Enum):
    local_allowed = "local_allowed"
    local_denied = "local_denied"
    country_allowed = "country_allowed"
    country_denied = "country_denied"
    invalid_address = "invalid_address"
    lookup_failed = "lookup_failed"


class Verdict(BaseModel):
    """Allow/deny outcome for one client address.

    The reason, ip and country fields are only meant for logging; the response sent
    to the client depends on `decision` alone.
    """

    model_config = ConfigDict(frozen=True)

    decision: Decision
    reason: VerdictReason
    ip: str | None = None
    country: str | None = None

    @property
    def allowed(self) -> bool:
        return self.decision is Decision.allow
