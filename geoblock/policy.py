from geoblock.models.common import AddressClass, ClientAddress, Decision, Verdict, VerdictReason
from geoblock.models.config import GeoBlockConfig


def decide(address: ClientAddress, country: str | None, config: GeoBlockConfig) -> Verdict:
    """Turn a classified client address and its resolved country into a verdict.

    `country` only matters for public addresses, where None means the lookup failed.
    Anything that cannot be positively matched against the configuration is denied.
    """
    ip = address.ip

    if address.classification is AddressClass.invalid:
        return Verdict(decision=Decision.deny, reason=VerdictReason.invalid_address, ip=ip)

    if address.classification is AddressClass.private:
        if config.allow_local_requests:
            return Verdict(decision=Decision.allow, reason=VerdictReason.local_allowed, ip=ip)
        return Verdict(decision=Decision.deny, reason=VerdictReason.local_denied, ip=ip)

    if country is None:
        return Verdict(decision=Decision.deny, reason=VerdictReason.lookup_failed, ip=ip)

    country = country.upper()
    if country in config.allowed_countries:
        return Verdict(decision=Decision.allow, reason=VerdictReason.country_allowed, ip=ip, country=country)
    return Verdict(decision=Decision.deny, reason=VerdictReason.country_denied, ip=ip, country=country)
