"""
Quota-aware retry helpers for forge requests.
The quota guard inspects the remaining request budget before every call and the
retry policy decides how long a rate-limited page keeps being retried.
"""

import time
import logging
from typing import Optional, Dict, Any, Callable, Tuple, TypeVar

from errors import RateLimitedError, RetryExhaustedError

log = logging.getLogger(__name__)

T = TypeVar("T")

# below this many remaining requests a warning is logged before each call
LOW_WATER_MARK = 100
# seconds added to the quota reset timestamp before resuming
RESET_MARGIN = 1.0
# fixed wait between retries of a rate-limited page
RATE_LIMIT_WAIT = 60.0


def _safe_int_from_headers(headers: Dict[str, Any], key: str) -> Optional[int]:
    try:
        val = headers.get(key)
        return int(val) if val is not None else None
    except (TypeError, ValueError):
        return None


def _safe_float_from_headers(headers: Dict[str, Any], key: str) -> Optional[float]:
    try:
        val = headers.get(key)
        return float(val) if val is not None else None
    except (TypeError, ValueError):
        return None


def parse_rate_headers(headers: Optional[Dict[str, Any]]) -> Tuple[Optional[int], Optional[float]]:
    """Return (remaining, reset epoch seconds) from X-RateLimit-* response headers."""
    headers = headers or {}
    return _safe_int_from_headers(headers, 'X-RateLimit-Remaining'), _safe_float_from_headers(headers, 'X-RateLimit-Reset')


class RetryPolicy:
    """
    Decides whether a rate-limited request may be retried.

    max_retries=None and deadline=None retries forever, which is the production default.
    deadline is measured in seconds from the first attempt.
    """

    def __init__(self, max_retries: Optional[int] = None, deadline: Optional[float] = None, wait_seconds: float = RATE_LIMIT_WAIT):
        self.max_retries = int(max_retries) if max_retries is not None else None
        self.deadline = float(deadline) if deadline is not None else None
        self.wait_seconds = float(wait_seconds)

    def allows(self, retries_done: int, elapsed: float) -> bool:
        if self.max_retries is not None and retries_done >= self.max_retries:
            return False
        if self.deadline is not None and elapsed + self.wait_seconds > self.deadline:
            return False
        return True


class QuotaGuard:
    """
    Checks the remaining request quota before a request is sent.

    read_quota returns (remaining, reset epoch seconds) or None when the quota is unknown.
    An exhausted quota suspends the calling thread until the reset time plus a margin.
    """

    def __init__(
        self,
        read_quota: Callable[[], Optional[Tuple[int, float]]],
        low_water_mark: int = LOW_WATER_MARK,
        reset_margin: float = RESET_MARGIN,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.read_quota = read_quota
        self.low_water_mark = int(low_water_mark)
        self.reset_margin = float(reset_margin)
        self._sleep = sleep
        self._clock = clock

    def wait_if_needed(self) -> float:
        """Block until a request may be sent. Returns the number of seconds slept."""
        quota = self.read_quota()
        if quota is None:
            return 0.0
        remaining, reset_at = quota
        if remaining < self.low_water_mark:
            log.warning("Approaching rate limit. Remaining requests: %s", remaining)
        if remaining > 0:
            return 0.0
        wait = max(0.0, float(reset_at) + self.reset_margin - self._clock())
        log.warning("Rate limit reached. Sleeping %.0fs until reset...", wait)
        self._sleep(wait)
        return wait


def call_with_rate_limit_retry(
    request: Callable[[], T],
    policy: RetryPolicy,
    guard: Optional[QuotaGuard] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    description: str = 'request',
) -> T:
    """Run request, retrying the same call while the forge reports rate limiting.

    Other errors propagate unchanged. When the policy gives up, RetryExhaustedError is raised.
    """
    retries = 0
    started = clock()
    while True:
        if guard is not None:
            guard.wait_if_needed()
        try:
            return request()
        except RateLimitedError as exc:
            if not policy.allows(retries, clock() - started):
                raise RetryExhaustedError(f"Gave up on {description} after {retries + 1} attempt(s)", attempts=retries + 1) from exc
            log.warning("Rate limited on %s. Waiting %.0fs before retrying...", description, policy.wait_seconds)
            sleep(policy.wait_seconds)
            retries += 1


__all__ = ["RetryPolicy", "QuotaGuard", "call_with_rate_limit_retry", "parse_rate_headers", "LOW_WATER_MARK", "RESET_MARGIN", "RATE_LIMIT_WAIT"]
