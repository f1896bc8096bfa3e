"""Exponential back-off for search and scroll requests."""

import logging
import threading
from collections.abc import Callable
from functools import wraps
from typing import TypeVar

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_before_delay,
    stop_when_event_set,
    wait_exponential,
)

from scrolldump.config.models import RetryConfig
from scrolldump.exceptions import (
    OperationCancelledError,
    RequestExhaustedError,
    TransientRequestError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _interruptible_sleep(cancel_event: threading.Event) -> Callable[[float], None]:
    """Build a tenacity sleep function that wakes up as soon as the event is set."""

    def sleep(seconds: float) -> None:
        if cancel_event.wait(seconds):
            raise OperationCancelledError("Cancelled while waiting to retry")

    return sleep


def _log_before_sleep(description: str) -> Callable[[RetryCallState], None]:
    def log(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            f"{description} failed (attempt {retry_state.attempt_number}): {error}; "
            f"retrying in {retry_state.upcoming_sleep:.1f}s"
        )

    return log


def build_retrying(
    policy: RetryConfig,
    cancel_event: threading.Event,
    description: str = "request",
) -> Retrying:
    """Build the tenacity controller for one request.

    Delays grow as ``initial_interval * multiplier ** (attempt - 1)`` capped at
    ``max_interval``. Retrying stops before a sleep would push the total
    elapsed time past ``max_elapsed``, or as soon as ``cancel_event`` is set.

    Args:
        policy: Backoff settings
        cancel_event: Cooperative cancellation signal
        description: Human-readable name of the request (for logs)

    Returns:
        Configured tenacity Retrying instance
    """
    return Retrying(
        retry=retry_if_exception_type(TransientRequestError),
        wait=wait_exponential(
            multiplier=policy.initial_interval,
            exp_base=policy.multiplier,
            min=policy.initial_interval,
            max=policy.max_interval,
        ),
        stop=stop_before_delay(policy.max_elapsed) | stop_when_event_set(cancel_event),
        sleep=_interruptible_sleep(cancel_event),
        before_sleep=_log_before_sleep(description),
    )


def execute_with_retry(
    operation: Callable[[], T],
    policy: RetryConfig | None = None,
    cancel_event: threading.Event | None = None,
    description: str = "request",
) -> T:
    """Run ``operation`` until it succeeds, the budget runs out, or cancellation.

    ``operation`` performs one network call and classifies its own outcome by
    raising TransientRequestError for anything worth retrying. Any other
    exception propagates immediately. Idempotency of ``operation`` is the
    caller's concern.

    Args:
        operation: Zero-argument callable performing a single attempt
        policy: Backoff settings (defaults to RetryConfig())
        cancel_event: Cooperative cancellation signal
        description: Human-readable name of the request (for logs and errors)

    Returns:
        Whatever ``operation`` returns on its first successful attempt

    Raises:
        RequestExhaustedError: If the elapsed-time budget is used up
        OperationCancelledError: If ``cancel_event`` is set before or during retries
    """
    policy = policy or RetryConfig()
    cancel_event = cancel_event or threading.Event()

    if cancel_event.is_set():
        raise OperationCancelledError(f"{description} cancelled before first attempt")

    retrying = build_retrying(policy, cancel_event, description)
    try:
        return retrying(operation)
    except RetryError as e:
        last_error = e.last_attempt.exception()
        if cancel_event.is_set():
            raise OperationCancelledError(f"{description} cancelled: {last_error}") from last_error
        logger.error(f"Giving up on {description} after {e.last_attempt.attempt_number} attempts")
        raise RequestExhaustedError(
            description, e.last_attempt.attempt_number, last_error
        ) from last_error


def with_retry(
    policy: RetryConfig | None = None,
    cancel_event: threading.Event | None = None,
    description: str | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator form of :func:`execute_with_retry`.

    Each call of the decorated function is one retried request. Arguments
    are passed through unchanged on every attempt.

    Args:
        policy: Backoff settings (defaults to RetryConfig())
        cancel_event: Cooperative cancellation signal shared by all calls
        description: Name used in logs and errors (defaults to the function name)

    Example:
        @with_retry(RetryConfig(max_elapsed=60), description="cluster health")
        def cluster_health(es):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = description or func.__name__

        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            return execute_with_retry(lambda: func(*args, **kwargs), policy, cancel_event, name)

        return wrapper

    return decorator
