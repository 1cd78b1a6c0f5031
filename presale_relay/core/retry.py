"""
Retry with exponential backoff.

Delay after failed attempt n (1-based) is base_delay_sec * 2**n, so the default
base of 1s sleeps 2, 4, 8, 16 seconds between five attempts. The sleep
function is injectable so callers and tests never depend on wall-clock time.
"""

from __future__ import annotations

import time
from typing import Callable, TypeVar

from presale_relay.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY_SEC = 1.0


class RetryExhausted(Exception):
    """Raised after the last attempt failed; wraps the final error."""

    def __init__(self, last_error: BaseException, attempts: int) -> None:
        super().__init__(str(last_error))
        self.last_error = last_error
        self.attempts = attempts


def backoff_delay(attempt: int, base_delay_sec: float = DEFAULT_BASE_DELAY_SEC) -> float:
    """Seconds to wait after failed attempt `attempt` (1-based)."""
    return base_delay_sec * (2 ** attempt)


def retry_with_backoff(
    fn: Callable[[], T],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay_sec: float = DEFAULT_BASE_DELAY_SEC,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    give_up_on: tuple[type[BaseException], ...] = (),
    sleep: Callable[[float], None] = time.sleep,
    operation: str = "operation",
) -> T:
    """
    Call fn until it returns, retrying errors in retry_on.

    Errors in give_up_on (or outside retry_on) propagate immediately. After
    max_attempts failures raises RetryExhausted without sleeping again.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    attempt = 0
    while True:
        attempt += 1
        try:
            return fn()
        except give_up_on:
            raise
        except retry_on as e:
            if attempt >= max_attempts:
                logger.error(
                    "retry_exhausted",
                    operation=operation,
                    attempts=attempt,
                    error=str(e),
                )
                raise RetryExhausted(e, attempt) from e
            delay = backoff_delay(attempt, base_delay_sec)
            logger.warning(
                "retry_attempt_failed",
                operation=operation,
                attempt=attempt,
                error=str(e),
                backoff_sec=round(delay, 1),
            )
            sleep(delay)
