"""
Bounded retry with exponential backoff for fallible async operations.

Only transient failures (network, timeout, 5xx, 429) are retried.
Validation failures, permanent HTTP errors and fatal errors are raised
on the first attempt.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from core.config import settings
from core.exceptions import (
    NonRetryableError,
    ParseError,
    PipelineError,
    RateLimitError,
    RetryableError,
    TransformationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_MESSAGE_PATTERNS = (
    "timeout",
    "timed out",
    "econnreset",
    "econnrefused",
    "etimedout",
    "socket hang up",
    "network",
    "connection reset",
    "connection refused",
    "temporarily unavailable",
    "503",
    "502",
    "504",
)


@dataclass
class RetryPolicy:
    """
    Retry policy.
    
    Delay before attempt n+1 is base_delay * multiplier ** (n - 1),
    capped at max_delay (seconds).
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 60.0
    
    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (self.multiplier ** (attempt - 1)), self.max_delay)
    
    @classmethod
    def from_settings(cls, config=None) -> "RetryPolicy":
        config = config or settings
        return cls(
            max_attempts=config.MAX_RETRIES,
            base_delay=config.RETRY_BASE_DELAY,
            max_delay=config.RETRY_MAX_DELAY,
        )


def is_transient(error: BaseException) -> bool:
    """Classify an error as worth retrying."""
    if isinstance(error, (NonRetryableError, TransformationError, ParseError)):
        return False
    if isinstance(error, RetryableError):
        return True
    if isinstance(error, (httpx.TimeoutException, httpx.TransportError, asyncio.TimeoutError)):
        return True
    message = (error.message if isinstance(error, PipelineError) else str(error)).lower()
    return any(pattern in message for pattern in TRANSIENT_MESSAGE_PATTERNS)


class RetryManager:
    """
    Wrap async operations with retry logic.
    
    Metrics:
        total_attempts: Every attempt made, first tries included
        successful_retries: Operations that succeeded after at least one retry
        failed_operations: Operations that raised after the last attempt
    """
    
    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        unavailability_wait: float = 300.0
    ):
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self.unavailability_wait = unavailability_wait
        self.total_attempts = 0
        self.successful_retries = 0
        self.failed_operations = 0
    
    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: Optional[RetryPolicy] = None,
        description: str = "operation"
    ) -> T:
        """
        Run operation, retrying transient failures.
        
        Args:
            operation: Zero-argument coroutine factory
            policy: Overrides the manager's default policy
            description: Label used in log messages
        
        Returns:
            The operation's result
        
        Raises:
            The last error once attempts are exhausted, or the first
            non-transient error
        """
        policy = policy or self.policy
        attempt = 0
        
        while True:
            attempt += 1
            self.total_attempts += 1
            try:
                result = await operation()
            except Exception as e:
                if not is_transient(e):
                    self.failed_operations += 1
                    raise
                
                if attempt >= policy.max_attempts:
                    self.failed_operations += 1
                    logger.error(
                        f"{description} failed after {attempt} attempts: {e}"
                    )
                    raise
                
                delay = policy.delay_for(attempt)
                if isinstance(e, RateLimitError) and e.retry_after:
                    delay = max(delay, float(e.retry_after))
                logger.warning(
                    f"{description} failed (attempt {attempt}/{policy.max_attempts}). "
                    f"Retrying in {delay:.1f}s: {e}"
                )
                await self._sleep(delay)
                continue
            
            if attempt > 1:
                self.successful_retries += 1
                logger.info(f"{description} succeeded after {attempt} attempts")
            return result
    
    async def wait_for_recovery(self) -> None:
        """Pause for the complete-unavailability window before trying again."""
        logger.warning(
            f"Source appears completely unavailable. Waiting {self.unavailability_wait:.0f}s"
        )
        await self._sleep(self.unavailability_wait)
    
    def get_metrics(self) -> dict:
        return {
            "total_attempts": self.total_attempts,
            "successful_retries": self.successful_retries,
            "failed_operations": self.failed_operations,
        }
    