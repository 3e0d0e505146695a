"""Retry policies for collaborator start-up checks.

The investigation pipeline itself never retries (a failed stage is recorded
once and the run stops). These policies are only applied at the collaborator
boundary: verifying that Redis or the model server is reachable before any
issue is processed.
"""

import logging
from typing import Callable, TypeVar

from tenacity import (
    RetryCallState,
    retry,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_retry_attempt(retry_state: RetryCallState) -> None:
    """Log the failed attempt before tenacity sleeps."""
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    name = getattr(retry_state.fn, "__name__", "call")
    logger.warning(
        f"[Startup] Attempt {retry_state.attempt_number} of {name} failed "
        f"after {retry_state.seconds_since_start:.1f}s: {exception}"
    )


# Waits 2s, 4s, 8s, 16s between the 5 attempts, then re-raises.
service_startup_retry = retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=2, max=32),
    before_sleep=_log_retry_attempt,
    reraise=True,
)


def create_custom_retry(
    max_attempts: int = 5,
    min_wait: float = 2,
    max_wait: float = 32,
    multiplier: float = 1,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Build a start-up retry decorator with a different budget.

    Args:
        max_attempts: Attempts before the last exception is re-raised
        min_wait: Lower bound of the exponential wait (seconds)
        max_wait: Upper bound of the exponential wait (seconds)
        multiplier: Exponential backoff multiplier

    Returns:
        A tenacity ``retry`` decorator

    Example:
        ```python
        quick_check = create_custom_retry(max_attempts=2, min_wait=0, max_wait=0)

        @quick_check
        async def ping_model_server():
            ...
        ```
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=multiplier, min=min_wait, max=max_wait),
        before_sleep=_log_retry_attempt,
        reraise=True,
    )
