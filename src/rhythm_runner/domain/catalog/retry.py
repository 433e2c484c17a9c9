"""
Retry policy for catalog requests.

Transient failures (timeouts, dropped connections, rate limiting, server
errors) are retried with exponential backoff plus proportional jitter.
Everything else surfaces immediately.
"""

import random
import time
from typing import Callable, Optional

from loguru import logger
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
)
from tenacity.wait import wait_base

from .exceptions import NetworkError


class wait_exponential_jitter_capped(wait_base):
    """Wait base * multiplier**n seconds plus up to `jitter` of that, capped.

    n is the number of retries already made, so the first wait is `base`.
    """

    def __init__(
        self,
        base: float = 1.0,
        multiplier: float = 2.0,
        jitter: float = 0.1,
        cap: float = 30.0,
        rng: Optional[random.Random] = None,
    ):
        self.base = base
        self.multiplier = multiplier
        self.jitter = jitter
        self.cap = cap
        self.rng = rng or random.Random()

    def __call__(self, retry_state: RetryCallState) -> float:
        retries = retry_state.attempt_number - 1
        delay = self.base * self.multiplier**retries
        delay += delay * self.rng.uniform(0.0, self.jitter)
        return min(delay, self.cap)


def is_retryable(exc: BaseException) -> bool:
    """Only transport-level network errors are worth another attempt."""
    return isinstance(exc, NetworkError) and exc.retryable


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        f"Retrying catalog request in {delay:.2f}s "
        f"(attempt {retry_state.attempt_number}): {exc}"
    )


def build_retrying(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    sleep: Callable[[float], None] = time.sleep,
    rng: Optional[random.Random] = None,
) -> Retrying:
    """Build a tenacity controller for one catalog call.

    Args:
        max_retries: Retries after the first attempt
        base_delay: First backoff delay in seconds
        max_delay: Upper bound for any single delay
        sleep: Sleep function (injectable for tests)
        rng: Random source for jitter

    Returns:
        Retrying instance that re-raises the last error when exhausted
    """
    return Retrying(
        retry=retry_if_exception(is_retryable),
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential_jitter_capped(base=base_delay, cap=max_delay, rng=rng),
        sleep=sleep,
        before_sleep=_log_retry,
        reraise=True,
    )
