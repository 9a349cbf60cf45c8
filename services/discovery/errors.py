"""Exceptions raised by the discovery index and its stores."""


class DiscoveryError(Exception):
    """Base class for discovery failures the caller may retry."""

    pass


class DiscoveryTimeoutError(DiscoveryError):
    """Raised when a search exceeds the caller-supplied timeout."""

    pass


class StoreUnavailableError(DiscoveryError):
    """Raised when the backing store cannot be reached."""

    pass
