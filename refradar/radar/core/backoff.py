# radar/core/backoff.py

import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from colorama import Fore

from radar.core.errors import ProviderError
from radar.globals import BACKOFF_BASE_DELAY, BACKOFF_MULTIPLIER, MAX_RETRIES
from radar.logger import ColorLogger

T = TypeVar("T")

log = ColorLogger("RETRY", Fore.YELLOW, include_timestamps=True)


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Exponential backoff for provider calls.

    max_attempts counts the retries made after the first call, so a call
    is tried at most 1 + max_attempts times.
    """
    base_delay: float = BACKOFF_BASE_DELAY
    max_attempts: int = MAX_RETRIES
    multiplier: float = BACKOFF_MULTIPLIER

    def delay_for(self, retry: int) -> float:
        """Delay before retry number `retry` (0-based)."""
        return self.base_delay * (self.multiplier ** retry)


def call_with_retry(
    fn: Callable[[], T],
    policy: BackoffPolicy,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "",
) -> T:
    """
    Call fn() and retry it on retryable ProviderErrors.

    Retries on:
      - RateLimited (honors the server's Retry-After hint if present)
      - transient Unavailable (network errors, timeouts, 5xx)

    NotFound, Malformed and non-transient failures are raised immediately.
    When attempts run out the last error is raised unchanged.
    """
    retry = 0
    while True:
        try:
            return fn()
        except ProviderError as e:
            if not e.retryable or retry >= policy.max_attempts:
                raise

            delay = policy.delay_for(retry)
            retry_after = getattr(e, "retry_after", None)
            if retry_after is not None:
                delay = retry_after

            prefix = f"[{label}] " if label else ""
            log.warn(
                f"{prefix}{e} (retry {retry + 1}/{policy.max_attempts}); "
                f"sleeping {delay:.1f}s then retrying..."
            )
            sleep(delay)
            retry += 1
