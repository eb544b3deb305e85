class AppError(Exception):
    """Base application error for the geoblock middleware."""


class ConfigError(AppError):
    """Base error for invalid middleware configuration.

    Raised while the middleware is being constructed; it is never raised while serving requests.
    """


class InvalidApiTemplateError(ConfigError):
    """Raised when the lookup API template is empty or lacks the {ip} placeholder."""


class EmptyCountryListError(ConfigError):
    """Raised when no allowed country code is configured."""


class InvalidCountryCodeError(ConfigError):
    """Raised when a configured country code is not a two-letter code."""


class InvalidConfigValueError(ConfigError):
    """Raised when a numeric option (timeout, cache TTL, cache size) is out of range."""


class ResolutionError(AppError):
    """Base error for country lookup failures."""


class LookupTimeoutError(ResolutionError):
    """Raised when the lookup service did not answer within the configured timeout."""


class LookupUnreachableError(ResolutionError):
    """Raised when the lookup service could not be reached or returned a non-2xx status."""


class MalformedLookupResponseError(ResolutionError):
    """Raised when the lookup service answered without a usable country code."""


class AddressError(AppError):
    """Base error for client address problems."""


class InvalidAddressError(AddressError):
    """Raised when a client address is not a valid IPv4 or IPv6 literal."""
