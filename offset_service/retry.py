import logging
import time
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

def exponential_backoff(attempt: int) -> float:
    """Seconds to wait after failed attempt number ``attempt`` (1-based): 2, 4, 8, ..."""
    return float(2 ** attempt)

def retry_call(
    fn: Callable[[], T],
    max_attempts: int,
    backoff: Callable[[int], float] = exponential_backoff,
    is_retryable: Callable[[Exception], bool] = lambda exc: True,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``fn`` until it returns, at most ``max_attempts`` times in total.

    Non-retryable exceptions propagate immediately. After the last attempt the
    last exception propagates.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 1
    while True:
        try:
            return fn()
        except Exception as exc:
            if attempt >= max_attempts or not is_retryable(exc):
                raise
            delay = backoff(attempt)
            logger.warning(f"Attempt {attempt}/{max_attempts} failed ({exc}); retrying in {delay:.0f}s")
            sleep(delay)
            attempt += 1
