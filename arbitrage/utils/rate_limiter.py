"""
Sliding-window rate limiting for outbound network calls.

Each RateLimiter owns its own list of request timestamps. Admission is
immediate: when the window is full the call is rejected with
RateLimitExceeded, there is no queue and no waiting.

Usage:
    limiter = RateLimiter("seller_feed", max_requests=30, window_seconds=60)
    try:
        offers = await limiter.run_guarded(lambda: connector.fetch_offers(item_id))
    except RateLimitExceeded:
        offers = []
"""
import time
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar

from arbitrage.config import Settings, get_settings
from arbitrage.utils.logger import get_logger

T = TypeVar("T")


class RateLimitExceeded(Exception):
    """Admission denied: the limiter's window is full"""

    def __init__(self, limiter_name: str, max_requests: int, window_seconds: float):
        self.limiter_name = limiter_name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        super().__init__(
            f"Rate limit exceeded for {limiter_name}: "
            f"{max_requests} requests per {window_seconds:g}s. Please try again later."
        )


class RateLimiter:
    """Sliding-window counter keyed to one named limiter instance"""

    def __init__(
        self,
        name: str,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
        logger=None
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._timestamps: List[float] = []
        self.log = get_logger(f"rate_limiter.{name}", logger)

    def _prune(self, now: float) -> None:
        self._timestamps = [
            ts for ts in self._timestamps
            if now - ts < self.window_seconds
        ]

    def can_proceed(self) -> bool:
        """Check whether a new request fits in the current window"""
        self._prune(self._clock())
        return len(self._timestamps) < self.max_requests

    def record(self) -> None:
        """Count a request made outside run_guarded()"""
        self._timestamps.append(self._clock())

    def remaining(self) -> int:
        """Requests still allowed in the current window"""
        self._prune(self._clock())
        return max(self.max_requests - len(self._timestamps), 0)

    def reset(self) -> None:
        self._timestamps.clear()

    async def run_guarded(self, fn: Callable[[], Awaitable[T]]) -> T:
        """
        Run an async call under the limiter.

        Raises RateLimitExceeded immediately when the window is full. The
        call takes its slot when admitted, so overlapping calls cannot exceed
        max_requests. A call that raises (or is cancelled) gives its slot
        back, so a failing endpoint does not consume the allowance.
        """
        if not self.can_proceed():
            self.log.warning(
                f"{self.name} rate limit reached "
                f"({self.max_requests}/{self.window_seconds:g}s), rejecting call"
            )
            raise RateLimitExceeded(self.name, self.max_requests, self.window_seconds)

        admitted_at = self._clock()
        self._timestamps.append(admitted_at)
        try:
            return await fn()
        except BaseException:
            self._release(admitted_at)
            raise

    def _release(self, admitted_at: float) -> None:
        if admitted_at in self._timestamps:
            self._timestamps.remove(admitted_at)


def build_rate_limiters(
    settings: Optional[Settings] = None,
    clock: Callable[[], float] = time.time
) -> Dict[str, RateLimiter]:
    """Create the named limiters used by the core (no shared module globals)"""
    settings = settings or get_settings()
    return {
        "seller_feed": RateLimiter(
            "seller_feed",
            max_requests=settings.seller_feed_rate_max_requests,
            window_seconds=settings.seller_feed_rate_window_seconds,
            clock=clock
        ),
        "notifications": RateLimiter(
            "notifications",
            max_requests=settings.notification_rate_max_requests,
            window_seconds=settings.notification_rate_window_seconds,
            clock=clock
        ),
    }
