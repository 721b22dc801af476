"""
Synchronous, buffered tuple iterator.

The caller's thread drives every pull: no background thread is involved, so
the iterator holds no locks. The first response message is pulled eagerly in
the constructor, which makes `has_next()` valid immediately and fixes the
column index and response metadata for the lifetime of the iterator.

Usage:
    with SynchronousTupleIterator(stub_call, on_complete=cleanup) as it:
        for tuple in it:
            print(tuple.as_long("id"))
"""

from __future__ import annotations

from collections import deque
from typing import Any, Deque, Iterable, Iterator, Optional

from cottontail_client.domain.messages import QueryResponseMessage
from cottontail_client.errors import IteratorDrained, TransportFailure
from cottontail_client.iterators.base import CompletionCallback, ResultMetadataMixin
from cottontail_client.iterators.column_index import ColumnIndex
from cottontail_client.iterators.tuple import Tuple
from cottontail_client.utils.logging import get_logger

log = get_logger(__name__)


def release_handle(handle: Any) -> None:
    """Cancel an in-flight call (or close a generator) backing a result stream."""
    cancel = getattr(handle, "cancel", None)
    if callable(cancel):
        cancel()
        return
    close = getattr(handle, "close", None)
    if callable(close):
        close()


class SynchronousTupleIterator(ResultMetadataMixin):
    """
    Pull iterator over a stream of `QueryResponseMessage`s.

    Parameters
    ----------
    results : Iterable[QueryResponseMessage]
        Message source, e.g. the response iterator of a unary-stream call.
        A single message may be passed as a one-element list.
    on_complete : callable, optional
        Invoked exactly once with ``(iterator, aborted)``: ``aborted=False``
        after natural exhaustion, ``aborted=True`` on `close()` or a transport
        failure.
    """

    def __init__(
        self,
        results: Iterable[QueryResponseMessage],
        on_complete: Optional[CompletionCallback] = None,
    ) -> None:
        self._handle = results
        self._results: Iterator[QueryResponseMessage] = iter(results)
        self._on_complete = on_complete
        self._buffer: Deque[Tuple] = deque()
        self._index = ColumnIndex()
        self._metadata = None
        self._exhausted = False
        self._finished = False

        first = self._pull()
        try:
            self._capture(first)
            if first is not None:
                self._enqueue(first)
        except Exception:
            self.close()
            raise

    # Internals

    def _pull(self) -> Optional[QueryResponseMessage]:
        try:
            message = next(self._results)
        except StopIteration:
            self._exhausted = True
            return None
        except TransportFailure:
            self._fail()
            raise
        except Exception as exc:
            self._fail()
            raise TransportFailure(f"Failed to pull result message: {exc}") from exc
        log.debug(
            "Result message received",
            extra={"query_id": self.query_id, "tuples": len(message.tuples)},
        )
        return message

    def _enqueue(self, message: QueryResponseMessage) -> None:
        # A message that fails to decode ends the result; rows after it are never served.
        try:
            decoded = [Tuple.decode(raw, self._index) for raw in message.tuples]
        except Exception:
            self._fail()
            raise
        self._buffer.extend(decoded)

    def _fail(self) -> None:
        self._exhausted = True
        self._buffer.clear()
        self._finish(aborted=True)

    def _finish(self, aborted: bool) -> None:
        if self._finished:
            return
        self._finished = True
        if aborted:
            release_handle(self._handle)
        self._handle = None
        log.debug(
            "TupleIterator finished",
            extra={"query_id": self.query_id, "aborted": aborted},
        )
        if self._on_complete is not None:
            self._on_complete(self, aborted)

    # Public API

    @property
    def completed(self) -> bool:
        """True once the message source has been exhausted."""
        return self._exhausted

    @property
    def closed(self) -> bool:
        """True once the completion callback has fired."""
        return self._finished

    def has_next(self) -> bool:
        """
        Returns True if another tuple is available, pulling further messages on demand.
        """
        while not self._buffer:
            if self._exhausted or self._finished:
                self._finish(aborted=False)
                return False
            message = self._pull()
            if message is not None:
                self._enqueue(message)
        return True

    def next(self) -> Tuple:
        """
        Returns the next tuple in server-emission order.

        Raises
        ------
        IteratorDrained
            If no tuple is buffered and the message source is exhausted.
        """
        if not self.has_next():
            raise IteratorDrained(
                "TupleIterator has been drained and no more elements can be loaded. "
                "Call has_next() to ensure that elements are available before calling next()."
            )
        return self._buffer.popleft()

    def close(self) -> None:
        """
        Close this iterator, releasing the underlying stream. Idempotent.
        """
        self._buffer.clear()
        self._finish(aborted=True)

    def __iter__(self) -> Iterator[Tuple]:
        return self

    def __next__(self) -> Tuple:
        if not self.has_next():
            raise StopIteration
        return self._buffer.popleft()

    def __enter__(self) -> "SynchronousTupleIterator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["SynchronousTupleIterator", "release_handle"]
