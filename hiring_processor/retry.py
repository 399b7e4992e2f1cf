"""Retry policy value object and a generic retry helper."""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

import structlog

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try an operation and how long to wait in between.

    Delays grow as base_delay * 2^(attempt-1) when exponential, otherwise
    base_delay * attempt. A jitter_factor of 0.2 spreads each delay by
    +/-20%.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    jitter_factor: float = 0.0
    exponential: bool = True

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given (1-based) failed attempt."""
        if self.base_delay <= 0 or attempt < 1:
            return 0.0

        if self.exponential:
            delay = self.base_delay * (2 ** (attempt - 1))
        else:
            delay = self.base_delay * attempt

        if self.jitter_factor > 0:
            spread = delay * self.jitter_factor
            delay += random.uniform(-spread, spread)

        return max(0.0, delay)


async def retry_with_policy(
    operation: Callable[[int], Awaitable[T]],
    policy: RetryPolicy,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    logger: Optional[structlog.stdlib.BoundLogger] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run operation(attempt) until it succeeds or the policy is exhausted.

    Only exceptions listed in retry_on are retried; the last one is
    re-raised once every attempt has failed. Anything else propagates
    immediately.
    """
    log = logger or structlog.get_logger()
    attempt = 0

    while True:
        attempt += 1
        try:
            return await operation(attempt)
        except retry_on as e:
            if attempt >= policy.max_attempts:
                log.warning(
                    "Retry attempts exhausted",
                    attempt=attempt,
                    max_attempts=policy.max_attempts,
                    error=str(e),
                )
                raise

            delay = policy.delay_for(attempt)
            log.info(
                "Attempt failed, retrying",
                attempt=attempt,
                max_attempts=policy.max_attempts,
                delay_seconds=round(delay, 3),
                error=str(e),
            )
            if delay > 0:
                await sleep(delay)
