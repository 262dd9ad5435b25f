"""Bounded waits and retries around capture driver calls.

``cv2.VideoCapture`` open and release can block inside the driver when a
device is busy or was unplugged; these helpers keep such calls from hanging
the run loop.
"""

from __future__ import annotations

import functools
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

from exceptions import CameraConnectionError
from log_config.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def run_with_timeout(
    func: Callable[[], T],
    timeout_seconds: float,
    error_message: str = "Operation timed out",
    camera_id: Optional[str] = None,
) -> T:
    """Call ``func`` on a helper thread, waiting at most ``timeout_seconds``.

    Exceptions raised by ``func`` propagate unchanged.

    Raises:
        CameraConnectionError: If the call does not return in time
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="capture-call")
    future = executor.submit(func)
    try:
        return future.result(timeout=timeout_seconds)
    except FutureTimeoutError:
        message = f"{error_message} after {timeout_seconds}s"
        logger.error(message)
        raise CameraConnectionError(message, camera_id=camera_id) from None
    finally:
        # A hung driver call cannot be interrupted; leave its thread behind.
        executor.shutdown(wait=False)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 5.0
    retry_on: Tuple[Type[Exception], ...] = (CameraConnectionError,)

    def delay(self, retry: int) -> float:
        """Seconds to wait before retry number ``retry`` (0-based), doubling up to ``max_delay``."""
        return min(self.base_delay * (2 ** retry), self.max_delay)


def retry_on_failure(
    policy: Optional[RetryPolicy] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Retry the decorated call on ``policy.retry_on`` errors with backoff.

    Other exceptions propagate on the first attempt.
    """
    policy = policy or RetryPolicy()

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            retry = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except policy.retry_on as e:
                    if retry + 1 >= policy.max_attempts:
                        logger.error(f"{func.__name__} failed after {retry + 1} attempts: {e}")
                        raise
                    delay = policy.delay(retry)
                    logger.warning(f"{func.__name__} failed ({e}); retrying in {delay:.2f}s")
                    time.sleep(delay)
                    retry += 1

        return wrapper

    return decorator


__all__ = ["RetryPolicy", "retry_on_failure", "run_with_timeout"]
