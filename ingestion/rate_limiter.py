"""
Minimum-interval rate limiter for requests to the source site.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Enforce a minimum delay between outbound requests.
    
    The first call never waits; every later call waits until at least
    min_interval_ms has passed since the previous call returned. One
    instance is shared by every scraper of a run, which calls it serially.
    
    Attributes:
        min_interval_ms: Minimum spacing between requests in milliseconds
        total_requests: Number of wait() calls so far
        total_wait_ms: Time spent sleeping, in milliseconds
    """
    
    def __init__(
        self,
        min_interval_ms: int = 2000,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        if min_interval_ms < 0:
            raise ValueError("min_interval_ms must be >= 0")
        self.min_interval_ms = min_interval_ms
        self._clock = clock
        self._sleep = sleep
        self._last_call: Optional[float] = None
        self.total_requests = 0
        self.total_wait_ms = 0.0
    
    async def wait(self) -> None:
        """Suspend until the next request is allowed."""
        if self._last_call is not None:
            elapsed_ms = (self._clock() - self._last_call) * 1000
            remaining_ms = self.min_interval_ms - elapsed_ms
            if remaining_ms > 0:
                logger.debug(f"Rate limit: waiting {remaining_ms:.0f}ms")
                await self._sleep(remaining_ms / 1000)
                self.total_wait_ms += remaining_ms
        
        self._last_call = self._clock()
        self.total_requests += 1
    
    def reset(self) -> None:
        """Forget the previous call so the next wait() returns at once."""
        self._last_call = None
        self.total_requests = 0
        self.total_wait_ms = 0.0
