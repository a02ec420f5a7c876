"""Deterministic error model and exit code contract."""

from __future__ import annotations

import asyncio
import concurrent.futures
from dataclasses import dataclass
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    RUNTIME_ERROR = 4
    VALIDATION_ERROR = 7
    OPERATION_FAILED = 9


@dataclass
class RetrywiseError(Exception):
    message: str
    code: ExitCode = ExitCode.RUNTIME_ERROR
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


class OperationCancelled(Exception):
    """Raised by an operation that observed a cooperative cancellation request."""


class TransientInterruptedError(Exception):
    """Normalized form of a cancellation signal seen during an attempt."""

    failure_kind = "TransientInterrupted"


CANCELLATION_SIGNALS: tuple[type[BaseException], ...] = (
    asyncio.CancelledError,
    concurrent.futures.CancelledError,
    OperationCancelled,
)


def user_facing_error(message: str, *, hint: str = "") -> str:
    if hint:
        return f"Error: {message}. Hint: {hint}"
    return f"Error: {message}."
