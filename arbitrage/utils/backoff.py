"""
Cooldown tracking for the platform's bot protection.

When the seller feed answers with a block page, further calls are paused for
uniform(min, max) * 2^n seconds, n being the number of consecutive blocks
(capped). The pause is a window callers check, never a sleep.
"""
import random
import time
from typing import Callable, Optional


def calculate_backoff(
    consecutive_blocks: int,
    min_delay: float = 60.0,
    max_delay: float = 90.0,
    max_exponent: int = 4,
    rng: Optional[random.Random] = None
) -> float:
    """
    Calculate the cooldown after a block.

    Args:
        consecutive_blocks: Blocks seen in a row, including this one (1-indexed)
        min_delay: Lower bound of the random base delay in seconds
        max_delay: Upper bound of the random base delay in seconds
        max_exponent: Cap on the exponent of the 2^n multiplier
        rng: Random source (tests pass a seeded one)

    Returns:
        Delay in seconds
    """
    rng = rng or random
    base = rng.uniform(min_delay, max_delay)
    exponent = min(max(consecutive_blocks, 0), max_exponent)
    return base * (2 ** exponent)


class BlockBackoff:
    """Consecutive-block counter with a cooldown deadline"""

    def __init__(
        self,
        min_delay: float = 60.0,
        max_delay: float = 90.0,
        max_exponent: int = 4,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None
    ):
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.max_exponent = max_exponent
        self._clock = clock
        self._rng = rng
        self.consecutive_blocks = 0
        self.blocked_until = 0.0

    def is_cooling_down(self) -> bool:
        return self._clock() < self.blocked_until

    def seconds_remaining(self) -> float:
        return max(self.blocked_until - self._clock(), 0.0)

    def record_block(self) -> float:
        """Register a block and return the cooldown it triggered"""
        self.consecutive_blocks += 1
        delay = calculate_backoff(
            self.consecutive_blocks,
            min_delay=self.min_delay,
            max_delay=self.max_delay,
            max_exponent=self.max_exponent,
            rng=self._rng
        )
        self.blocked_until = self._clock() + delay
        return delay

    def record_success(self) -> None:
        self.consecutive_blocks = 0
        self.blocked_until = 0.0
