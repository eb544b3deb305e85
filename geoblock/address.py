from collections.abc import Iterator
from ipaddress import IPv4Address, IPv6Address, ip_address, ip_network

from starlette.datastructures import Headers

from geoblock.errors import InvalidAddressError
from geoblock.models.common import AddressClass, ClientAddress

# Loopback and link-local are checked through the ipaddress properties.
PRIVATE_NETWORKS = (
    ip_network("10.0.0.0/8"),
    ip_network("172.16.0.0/12"),
    ip_network("192.168.0.0/16"),
    ip_network("fc00::/7"),
)


def parse_address(raw: str) -> IPv4Address | IPv6Address:
    """Parse an IPv4 or IPv6 literal, ignoring surrounding whitespace.

    IPv4-mapped IPv6 addresses (::ffff:a.b.c.d) are returned as the embedded IPv4
    address so both spellings classify the same way. IPv6 zone ids (%eth0) are dropped.
    """
    try:
        address = ip_address(raw.strip())
    except (AttributeError, ValueError) as exc:
        raise InvalidAddressError(f"{raw!r} is not a valid IPv4 or IPv6 address.") from exc

    if isinstance(address, IPv6Address) and address.scope_id is not None:
        address = IPv6Address(str(address).split("%", 1)[0])
    if isinstance(address, IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address


def is_private_address(address: IPv4Address | IPv6Address) -> bool:
    if address.is_loopback or address.is_link_local:
        return True
    return any(address in network for network in PRIVATE_NETWORKS)


def classify(raw: str) -> ClientAddress:
    """Classify a raw client address as invalid, private or public."""
    try:
        address = parse_address(raw)
    except InvalidAddressError:
        return ClientAddress(raw=str(raw), classification=AddressClass.invalid)

    classification = AddressClass.private if is_private_address(address) else AddressClass.public
    return ClientAddress(raw=raw, address=address, classification=classification)


def iter_candidate_addresses(
    headers: Headers,
    client_host: str | None,
    header_name: str = "X-Forwarded-For",
) -> Iterator[str]:
    """Yield the client addresses a request should be judged by.

    Every occurrence of the forwarding header contributes its leftmost entry, which by
    convention is the originating client. The header is trusted as-is: the middleware
    must sit behind a proxy that sets or overwrites it, otherwise clients can present
    any address they like. Without the header the transport-level peer address is used.
    """
    values = headers.getlist(header_name)
    if values:
        for value in values:
            yield value.split(",", 1)[0].strip()
        return

    if client_host:
        yield client_host
