"""
Exception taxonomy for the Cottontail DB client.

Decode-time and caller-misuse errors are raised synchronously at the call site
that caused them. Transport errors are wrapped into TransportFailure at the
transport boundary and re-raised at the next iterator or writer call.
"""

from __future__ import annotations

from typing import Optional


class CottontailClientError(Exception):
    """Base class for all errors raised by this package."""


class UnsupportedKind(CottontailClientError, ValueError):
    """A literal or vector kind in a response row has no known decoding."""

    def __init__(self, kind: object, vector: bool = False) -> None:
        self.kind = kind
        self.vector = vector
        what = "Vector data" if vector else "Data"
        super().__init__(f"{what} of kind {kind!r} is not supported by TupleIterator.")


class UnknownColumn(CottontailClientError, KeyError):
    """A name-based accessor was given a column name that is not in the result."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Column {self.name} not known to this TupleIterator."


class MalformedTuple(CottontailClientError, ValueError):
    """A response row does not carry one value per declared result column."""

    def __init__(self, size: int, expected: int) -> None:
        self.size = size
        self.expected = expected
        super().__init__(f"Tuple has {size} values but the result declares {expected} columns.")


class IteratorDrained(CottontailClientError, LookupError):
    """next() was called although the iterator holds no more tuples."""


class ClosedWriter(CottontailClientError, RuntimeError):
    """A write or completion was attempted on a writer in a terminal state."""


class TransportFailure(CottontailClientError):
    """The underlying transport reported an error while pulling or pushing messages."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        self.code = code
        super().__init__(message if code is None else f"{message} (status={code})")


class StreamClosed(ClosedWriter, TransportFailure):
    """
    The server or transport ended a writer's stream before the call.

    A `ClosedWriter` that keeps the status code of the failure that ended the
    stream, when there was one.
    """


__all__ = [
    "CottontailClientError",
    "UnsupportedKind",
    "UnknownColumn",
    "MalformedTuple",
    "IteratorDrained",
    "ClosedWriter",
    "TransportFailure",
    "StreamClosed",
]
