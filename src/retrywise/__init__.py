"""Retry-with-backoff executor for transient failures."""

from .classifier import DEFAULT_TRANSIENT_KINDS, FailureInfo, FailureKind, is_transient, kind_of
from .errors import OperationCancelled, RetrywiseError, TransientInterruptedError
from .retry import Failure, Outcome, RetryPolicy, Success, retry, retrying

__all__ = [
    "DEFAULT_TRANSIENT_KINDS",
    "Failure",
    "FailureInfo",
    "FailureKind",
    "is_transient",
    "kind_of",
    "OperationCancelled",
    "Outcome",
    "retry",
    "RetryPolicy",
    "retrying",
    "RetrywiseError",
    "Success",
    "TransientInterruptedError",
]
