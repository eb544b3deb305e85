from abc import ABC, abstractmethod


class BaseCountryLookupClient(ABC):
    """Abstract base for all country lookup clients.

    Concrete implementations map a public IP address to an upper-case ISO 3166-1
    alpha-2 country code, raising a `ResolutionError` subclass when they cannot.
    They must be safe to call from many concurrent requests.
    """

    @abstractmethod
    async def resolve_country(self, ip: str) -> str:
        """Return the country code for a public IP address."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release any resources held by the client."""
        return None
