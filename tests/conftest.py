"""
Pytest configuration for the Cottontail DB client.

Provides fixtures for:
- Building response messages from plain Python rows
- Recording completion callbacks of tuple iterators
- A fake duplex write stream driven by the test instead of a server
- Settings with test-specific overrides
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

import pytest

from cottontail_client.config import Settings
from cottontail_client.domain.literals import to_literal
from cottontail_client.domain.messages import (
    ColumnDescriptor,
    LiteralData,
    QueryResponseMessage,
    ResponseMetadata,
    TupleData,
)

ColumnSpec = Tuple[str, str]


def _descriptor(qualified: str, simple: str) -> ColumnDescriptor:
    parts = qualified.split(".")
    assert parts[-1] == simple, "qualified name must end with the simple name"
    if len(parts) == 3:
        return ColumnDescriptor(schema=parts[0], entity=parts[1], name=simple)
    if len(parts) == 2:
        return ColumnDescriptor(entity=parts[0], name=simple)
    return ColumnDescriptor(name=simple)


def _literal(value: Any) -> LiteralData:
    return value if isinstance(value, LiteralData) else to_literal(value)


def build_response(
    rows: Iterable[Sequence[Any]] = (),
    columns: Sequence[ColumnSpec] = (),
    transaction_id: Optional[int] = None,
    query_id: Optional[str] = None,
) -> QueryResponseMessage:
    metadata = None
    if transaction_id is not None or query_id is not None:
        metadata = ResponseMetadata(transaction_id=transaction_id, query_id=query_id)
    return QueryResponseMessage(
        metadata=metadata,
        columns=[_descriptor(q, s) for q, s in columns],
        tuples=[TupleData(data=[_literal(v) for v in row]) for row in rows],
    )


@pytest.fixture
def make_response() -> Callable[..., QueryResponseMessage]:
    """
    Factory for `QueryResponseMessage`s: ``make_response(rows, columns=[("t.id", "id")])``.
    """
    return build_response


class CompletionRecorder:
    """Callable recording every (iterator, aborted) invocation."""

    def __init__(self) -> None:
        self.calls: List[Tuple[Any, bool]] = []

    def __call__(self, iterator: Any, aborted: bool) -> None:
        self.calls.append((iterator, aborted))

    @property
    def aborted_flags(self) -> List[bool]:
        return [aborted for _, aborted in self.calls]


@pytest.fixture
def completion() -> CompletionRecorder:
    return CompletionRecorder()


class FakeWriteStream:
    """
    Duplex write stream whose server side is driven by the test.

    `ack()` delivers acknowledgments to the observer; `complete()` and
    `abort()` optionally answer with the terminal signal right away, as a
    cooperative server would.
    """

    def __init__(self, observer: Any, auto_terminate: bool = True) -> None:
        self.observer = observer
        self.auto_terminate = auto_terminate
        self.sent: List[Any] = []
        self.completed = False
        self.aborted_with: Optional[str] = None
        self._lock = threading.Lock()

    def send(self, message: Any) -> None:
        with self._lock:
            self.sent.append(message)

    def complete(self) -> None:
        self.completed = True
        if self.auto_terminate:
            self.observer.on_completed()

    def abort(self, reason: str) -> None:
        self.aborted_with = reason
        if self.auto_terminate:
            self.observer.on_error(RuntimeError(reason))

    def ack(self, count: int = 1) -> None:
        for _ in range(count):
            self.observer.on_next(object())


@pytest.fixture
def fake_stream_opener() -> Callable[..., Any]:
    """
    Returns ``open_stream(auto_terminate=True)``: an opener for BatchInsertClient
    that records the created FakeWriteStream as ``opener.stream``.
    """

    def factory(auto_terminate: bool = True) -> Callable[[Any], FakeWriteStream]:
        def opener(observer: Any) -> FakeWriteStream:
            opener.stream = FakeWriteStream(observer, auto_terminate=auto_terminate)
            return opener.stream

        opener.stream = None
        return opener

    return factory


@pytest.fixture
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.
    """
    return Settings(
        COTTONTAIL_HOST="localhost",
        COTTONTAIL_PORT=1865,
        BATCH_MAX_IN_FLIGHT=4,
        LOG_LEVEL="DEBUG",
    )
