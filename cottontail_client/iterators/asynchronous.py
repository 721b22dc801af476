"""
Asynchronous variant of the pull iterator.

Follows the same state machine as `SynchronousTupleIterator` but awaits an
async message source (e.g. a `grpc.aio` unary-stream call). Since the first
message is pulled eagerly, instances are created through the `open()`
coroutine rather than the constructor.
"""

from __future__ import annotations

import inspect
from collections import deque
from typing import Any, AsyncIterable, AsyncIterator, Deque, Optional

from cottontail_client.domain.messages import QueryResponseMessage
from cottontail_client.errors import IteratorDrained, TransportFailure
from cottontail_client.iterators.base import CompletionCallback, ResultMetadataMixin
from cottontail_client.iterators.column_index import ColumnIndex
from cottontail_client.iterators.tuple import Tuple
from cottontail_client.utils.logging import get_logger

log = get_logger(__name__)


async def _release_handle(handle: Any) -> None:
    cancel = getattr(handle, "cancel", None)
    if callable(cancel):
        result = cancel()
        if inspect.isawaitable(result):
            await result
        return
    aclose = getattr(handle, "aclose", None)
    if callable(aclose):
        await aclose()


class AsyncTupleIterator(ResultMetadataMixin):
    """
    Async pull iterator over a stream of `QueryResponseMessage`s.

    Use ``await AsyncTupleIterator.open(results)``; the completion callback may
    be a plain function or a coroutine function.
    """

    def __init__(
        self,
        results: AsyncIterable[QueryResponseMessage],
        on_complete: Optional[CompletionCallback] = None,
    ) -> None:
        self._handle = results
        self._results: AsyncIterator[QueryResponseMessage] = results.__aiter__()
        self._on_complete = on_complete
        self._buffer: Deque[Tuple] = deque()
        self._index = ColumnIndex()
        self._metadata = None
        self._exhausted = False
        self._finished = False

    @classmethod
    async def open(
        cls,
        results: AsyncIterable[QueryResponseMessage],
        on_complete: Optional[CompletionCallback] = None,
    ) -> "AsyncTupleIterator":
        iterator = cls(results, on_complete)
        first = await iterator._pull()
        try:
            iterator._capture(first)
            if first is not None:
                await iterator._enqueue(first)
        except Exception:
            await iterator.close()
            raise
        return iterator

    async def _pull(self) -> Optional[QueryResponseMessage]:
        try:
            return await self._results.__anext__()
        except StopAsyncIteration:
            self._exhausted = True
            return None
        except TransportFailure:
            await self._fail()
            raise
        except Exception as exc:
            await self._fail()
            raise TransportFailure(f"Failed to pull result message: {exc}") from exc

    async def _enqueue(self, message: QueryResponseMessage) -> None:
        try:
            decoded = [Tuple.decode(raw, self._index) for raw in message.tuples]
        except Exception:
            await self._fail()
            raise
        self._buffer.extend(decoded)

    async def _fail(self) -> None:
        self._exhausted = True
        self._buffer.clear()
        await self._finish(aborted=True)

    async def _finish(self, aborted: bool) -> None:
        if self._finished:
            return
        self._finished = True
        if aborted:
            await _release_handle(self._handle)
        self._handle = None
        log.debug("AsyncTupleIterator finished", extra={"query_id": self.query_id, "aborted": aborted})
        if self._on_complete is not None:
            result = self._on_complete(self, aborted)
            if inspect.isawaitable(result):
                await result

    @property
    def completed(self) -> bool:
        return self._exhausted

    @property
    def closed(self) -> bool:
        return self._finished

    async def has_next(self) -> bool:
        while not self._buffer:
            if self._exhausted or self._finished:
                await self._finish(aborted=False)
                return False
            message = await self._pull()
            if message is not None:
                await self._enqueue(message)
        return True

    async def next(self) -> Tuple:
        if not await self.has_next():
            raise IteratorDrained(
                "AsyncTupleIterator has been drained and no more elements can be loaded. "
                "Await has_next() to ensure that elements are available before calling next()."
            )
        return self._buffer.popleft()

    async def close(self) -> None:
        self._buffer.clear()
        await self._finish(aborted=True)

    def __aiter__(self) -> "AsyncTupleIterator":
        return self

    async def __anext__(self) -> Tuple:
        if not await self.has_next():
            raise StopAsyncIteration
        return self._buffer.popleft()

    async def __aenter__(self) -> "AsyncTupleIterator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


__all__ = ["AsyncTupleIterator"]
