"""Retry helpers shared by the facade operations."""

import functools
import logging
import time
from typing import Callable, Optional, Tuple, Type

from pymongo.errors import (
    AutoReconnect,
    ConnectionFailure,
    NetworkTimeout,
    PyMongoError,
    ServerSelectionTimeoutError,
)

from .exceptions import FacadeError, RetryBudgetExhausted

LOGGER = logging.getLogger(__name__)

# Ceiling used when neither the decorator nor the model names one
DEFAULT_RETRY_ATTEMPTS = 15

TRANSIENT_ERRORS = (
    AutoReconnect,
    ConnectionFailure,
    NetworkTimeout,
    ServerSelectionTimeoutError,
)


def is_transient_error(exc: BaseException) -> bool:
    """Return True for errors worth retrying (network blips, write conflicts).

    Assign to ``MongoModel.retry_if`` to stop retrying validation errors and
    other permanent failures.
    """
    if isinstance(exc, TRANSIENT_ERRORS):
        return True
    if isinstance(exc, PyMongoError):
        return exc.has_error_label("TransientTransactionError")
    return False


def _always(_exc: BaseException) -> bool:
    return True


def _resolve_attempts(max_retries: Optional[int], args) -> int:
    if max_retries is not None:
        return max_retries
    owner = args[0] if args else None
    resolver = getattr(owner, "resolve_retry_attempts", None)
    if callable(resolver):
        return resolver()
    return DEFAULT_RETRY_ATTEMPTS


def _resolve_predicate(retry_if, args) -> Callable[[BaseException], bool]:
    if retry_if is not None:
        return retry_if
    owner = args[0] if args else None
    predicate = getattr(owner, "retry_if", None)
    return predicate if callable(predicate) else _always


def with_retry(
    max_retries: Optional[int] = None,
    base_delay: float = 0.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    retry_if: Optional[Callable[[BaseException], bool]] = None,
):
    """Retry the decorated callable a bounded number of times.

    Args:
        max_retries: Maximum number of invocations per call. When None, the
            ceiling is read at call time from the first positional argument's
            ``resolve_retry_attempts()`` (the model class for classmethods),
            falling back to DEFAULT_RETRY_ATTEMPTS.
        base_delay: Seconds to sleep after the n-th failure, multiplied by n.
            Zero disables sleeping.
        exceptions: Exception types that trigger a retry. Anything else, and
            any FacadeError, propagates after a single invocation.
        retry_if: Predicate over the caught exception. When None, the first
            positional argument's ``retry_if`` attribute is used if present,
            otherwise every matching exception is retried.

    Raises:
        RetryBudgetExhausted: Every attempt failed with a retryable error.
    """

    def decorator(func):
        operation = func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            attempts = _resolve_attempts(max_retries, args)
            should_retry = _resolve_predicate(retry_if, args)
            last_error = None

            for attempt in range(1, attempts + 1):
                try:
                    return func(*args, **kwargs)
                except FacadeError:
                    raise
                except exceptions as e:
                    if not should_retry(e):
                        raise
                    last_error = e
                    LOGGER.warning(
                        "%s failed (attempt %d/%d): %s",
                        operation,
                        attempt,
                        attempts,
                        e,
                    )
                    if base_delay and attempt < attempts:
                        time.sleep(base_delay * attempt)

            LOGGER.error("%s gave up after %d attempts", operation, attempts)
            raise RetryBudgetExhausted(operation, attempts, last_error) from last_error

        return wrapper

    return decorator
