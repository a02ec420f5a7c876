"""Transient failure classification.

Failures are matched by an exact kind tag. The tag is the ``failure_kind``
attribute an exception class declares for itself, or its concrete class name
when it declares none. Base classes are never consulted, so registering
``ConnectionError`` does not make ``ConnectionResetError`` transient.
"""

from __future__ import annotations

from collections.abc import Container, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class FailureKind(str, Enum):
    CONNECTION = "ConnectionError"
    INTERRUPTED_IO = "InterruptedError"
    TRANSIENT_INTERRUPTED = "TransientInterrupted"


DEFAULT_TRANSIENT_KINDS: frozenset[str] = frozenset(kind.value for kind in FailureKind)

KindLike = Union[str, FailureKind, BaseException, type[BaseException]]


def kind_of(failure: BaseException | type[BaseException]) -> str:
    cls = failure if isinstance(failure, type) else type(failure)
    declared = cls.__dict__.get("failure_kind")
    if isinstance(declared, str) and declared:
        return declared
    return cls.__name__


def _tag(kind: KindLike) -> str:
    if isinstance(kind, FailureKind):
        return kind.value
    if isinstance(kind, str):
        tag = kind.strip()
        if not tag:
            raise ValueError("Failure kind tag cannot be empty")
        return tag
    if isinstance(kind, BaseException) or (isinstance(kind, type) and issubclass(kind, BaseException)):
        return kind_of(kind)
    raise TypeError(f"Unsupported failure kind: {kind!r}")


def normalize_kinds(kinds: Iterable[KindLike]) -> frozenset[str]:
    if isinstance(kinds, (str, FailureKind)):
        return frozenset({_tag(kinds)})
    return frozenset(_tag(kind) for kind in kinds)


def exception_message(exc: BaseException) -> str:
    try:
        return str(exc)
    except Exception:
        return f"<unprintable {type(exc).__name__}>"


@dataclass(frozen=True)
class FailureInfo:
    kind: str
    message: str
    error: BaseException | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_exception(cls, exc: BaseException) -> FailureInfo:
        return cls(kind=kind_of(exc), message=exception_message(exc), error=exc)

    def __str__(self) -> str:
        if self.message:
            return f"{self.kind}: {self.message}"
        return self.kind


def is_transient(failure: FailureInfo, transient_kinds: Container[str]) -> bool:
    return failure.kind in transient_kinds
