"""
Bounded retry with backoff.

    token = retry_call(
        fetch_token,
        max_attempts=3,
        backoff=linear_backoff(0.5),
        retry_on=(requests.ConnectionError, requests.Timeout),
    )

The delay before attempt N (N >= 2) is backoff(N). Exceptions outside
`retry_on` propagate immediately; after the last attempt the final
retryable exception is re-raised unchanged.
"""

import logging
import time
from typing import Callable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


def linear_backoff(base_seconds: float) -> Callable[[int], float]:
    """Delay grows linearly with the attempt number: base * attempt."""
    def backoff(attempt: int) -> float:
        return base_seconds * attempt
    return backoff


def retry_call(
    func: Callable[[], T],
    max_attempts: int,
    backoff: Callable[[int], float],
    retry_on: Tuple[Type[BaseException], ...],
    description: str = 'operation',
) -> T:
    if max_attempts < 1:
        raise ValueError('max_attempts must be at least 1')

    for attempt in range(1, max_attempts + 1):
        if attempt > 1:
            delay = backoff(attempt)
            logger.debug(f'Retrying {description} in {delay:.1f}s (attempt {attempt}/{max_attempts})')
            time.sleep(delay)

        try:
            return func()
        except retry_on as e:
            logger.warning(f'{description} failed (attempt {attempt}/{max_attempts}): {e}')
            if attempt == max_attempts:
                raise

    # Unreachable: the loop either returns or raises
    raise RuntimeError('retry_call exited without result')
