"""Retry/backoff engine for transient failures."""

from __future__ import annotations

import functools
import logging as py_logging
import math
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Generic, NoReturn, TypeVar, Union

from .classifier import (
    DEFAULT_TRANSIENT_KINDS,
    FailureInfo,
    KindLike,
    exception_message,
    is_transient,
    normalize_kinds,
)
from .errors import CANCELLATION_SIGNALS, ExitCode, RetrywiseError, TransientInterruptedError

T = TypeVar("T")

logger = py_logging.getLogger(__name__)


def _is_finite_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay: float = 10.0
    backoff_multiplier: float = 2.0
    transient_kinds: frozenset[str] = DEFAULT_TRANSIENT_KINDS

    def __post_init__(self) -> None:
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int) or self.max_retries < 0:
            raise RetrywiseError(
                f"Invalid max_retries: {self.max_retries!r}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Use a non-negative integer.",
            )
        if not _is_finite_number(self.base_delay) or self.base_delay < 0:
            raise RetrywiseError(
                f"Invalid base_delay: {self.base_delay!r}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Use a finite delay of zero seconds or more.",
            )
        if not _is_finite_number(self.backoff_multiplier) or self.backoff_multiplier <= 0:
            raise RetrywiseError(
                f"Invalid backoff_multiplier: {self.backoff_multiplier!r}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Use a finite multiplier greater than zero.",
            )
        try:
            kinds = normalize_kinds(self.transient_kinds)
        except (TypeError, ValueError) as exc:
            raise RetrywiseError(
                f"Invalid transient_kinds: {exc}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Use failure kind tags or exception classes.",
            ) from exc
        object.__setattr__(self, "transient_kinds", kinds)

    def next(self) -> RetryPolicy:
        """Policy for the following attempt: one retry spent, delay scaled."""
        delay = self.base_delay * self.backoff_multiplier
        if math.isinf(delay):
            delay = sys.float_info.max
        return replace(self, max_retries=self.max_retries - 1, base_delay=delay)

    def extend(self, *kinds: KindLike) -> RetryPolicy:
        return replace(self, transient_kinds=self.transient_kinds | normalize_kinds(kinds))


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    cause: FailureInfo
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self) -> NoReturn:
        if self.cause.error is not None:
            raise self.cause.error
        raise RetrywiseError(str(self.cause), code=ExitCode.OPERATION_FAILED)


Outcome = Union[Success[T], Failure]


def _attempt(operation: Callable[[], T]) -> T:
    try:
        return operation()
    except CANCELLATION_SIGNALS as exc:
        logger.debug("Cancellation signal caught: %s", type(exc).__name__)
        raise TransientInterruptedError(exception_message(exc)) from exc


def retry(
    operation: Callable[[], T],
    policy: RetryPolicy | None = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> Outcome[T]:
    """Run ``operation`` until it succeeds or a retry is not allowed.

    A failure is retried only while ``policy.max_retries`` is positive and its
    kind is in ``policy.transient_kinds``. Every retry waits ``base_delay``
    seconds and then continues with ``policy.next()``, so delays grow by
    ``backoff_multiplier`` each time. The returned ``Failure`` carries the last
    attempt's failure only.
    """
    current = policy if policy is not None else RetryPolicy()
    attempts = 0

    while True:
        attempts += 1
        logger.debug("Attempt %s (retries left=%s)", attempts, current.max_retries)
        try:
            value = _attempt(operation)
        except Exception as exc:
            failure = FailureInfo.from_exception(exc)
        else:
            return Success(value, attempts=attempts)

        if current.max_retries > 0 and is_transient(failure, current.transient_kinds):
            logger.info(
                "Transient failure on attempt %s: %s; retrying in %.3fs",
                attempts,
                failure,
                current.base_delay,
            )
            try:
                sleep(current.base_delay)
            except (OverflowError, ValueError) as exc:
                logger.warning("Cannot wait %ss before retrying: %s", current.base_delay, exc)
                return Failure(failure, attempts=attempts)
            current = current.next()
            continue

        if not is_transient(failure, current.transient_kinds):
            logger.warning("Non-transient failure on attempt %s: %s", attempts, failure)
        else:
            logger.warning("Retries exhausted after %s attempts: %s", attempts, failure)
        return Failure(failure, attempts=attempts)


def retrying(
    policy: RetryPolicy | None = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> Callable[[Callable[..., T]], Callable[..., Outcome[T]]]:
    """Bind a policy once and retry every call of the decorated function."""

    def decorator(func: Callable[..., T]) -> Callable[..., Outcome[T]]:
        @functools.wraps(func)
        def wrapper(*args: object, **kwargs: object) -> Outcome[T]:
            return retry(functools.partial(func, *args, **kwargs), policy, sleep=sleep)

        return wrapper

    return decorator
