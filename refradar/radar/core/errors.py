# radar/core/errors.py

from typing import Optional


class ProviderError(Exception):
    """
    Base class for every failure of an external provider call.

    Carries the provider name and, when the failure came from an HTTP
    response, its status code. `retryable` tells the backoff loop whether
    another attempt may succeed.
    """

    retryable = False

    def __init__(self, source: str, message: str, status_code: Optional[int] = None):
        self.source = source
        self.message = message
        self.status_code = status_code
        super().__init__(f"{source}: {message}")


class NotFound(ProviderError):
    """The provider has no record for the identifier."""


class RateLimited(ProviderError):
    """HTTP 429. Optionally carries the server's Retry-After hint."""

    retryable = True

    def __init__(self, source: str, message: str, status_code: Optional[int] = 429,
                 retry_after: Optional[float] = None):
        super().__init__(source, message, status_code)
        self.retry_after = retry_after


class Unavailable(ProviderError):
    """Network failure, timeout or unexpected HTTP status."""

    def __init__(self, source: str, message: str, status_code: Optional[int] = None,
                 transient: bool = True):
        super().__init__(source, message, status_code)
        self.retryable = transient


class Malformed(ProviderError):
    """Payload could not be parsed or did not have the expected shape."""


class BudgetExhausted(Exception):
    """Raised when the wall-clock budget runs out before a new unit of work starts."""
