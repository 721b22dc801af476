"""
Batched writer over a bidirectional insert stream.

Flow control couples the caller's write rate to server throughput: every
`insert()` takes one permit from a counting semaphore sized to the configured
maximum of in-flight writes, and every server acknowledgment (delivered on the
transport's I/O thread) gives one back. Client-side memory is therefore bounded
by ``max_in_flight x row size``.

`complete()` (commit) and `abort()` (rollback) block on a condition variable
until the transport reports the terminal state of the stream.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Any, Callable, Optional

from cottontail_client.config import get_settings
from cottontail_client.domain.messages import InsertMessage
from cottontail_client.errors import ClosedWriter, StreamClosed, TransportFailure
from cottontail_client.infrastructure.transport import StreamObserver, WriteStream
from cottontail_client.utils.logging import get_logger

log = get_logger(__name__)

StreamOpener = Callable[[StreamObserver], WriteStream]


class WriterState(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    ERRORED = "errored"


class BatchInsertClient:
    """
    Client for BATCH INSERTS, e.g. for importing large amounts of data.

    `insert()` can be called `max_in_flight` times without blocking; after
    that it blocks until preceding messages have been acknowledged by the
    server. Acknowledgments are not correlated with individual rows.

    Parameters
    ----------
    open_stream : callable
        Opens the duplex call, given this client as the observer of server
        acknowledgments and terminal signals.
    max_in_flight : int, optional
        Maximum number of unacknowledged writes. Defaults to
        `Settings.batch_max_in_flight` (1000).
    wait_timeout : float, optional
        Upper bound in seconds for waiting on a permit or on the terminal
        state. Defaults to `Settings.batch_wait_timeout_seconds` (unbounded).
    """

    def __init__(
        self,
        open_stream: StreamOpener,
        max_in_flight: Optional[int] = None,
        wait_timeout: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        self.max_in_flight = max_in_flight if max_in_flight is not None else settings.batch_max_in_flight
        if self.max_in_flight <= 0:
            raise ValueError("max_in_flight must be positive.")
        self._wait_timeout = wait_timeout if wait_timeout is not None else settings.batch_wait_timeout_seconds
        self._permits = threading.Semaphore(self.max_in_flight)
        self._condition = threading.Condition()
        self._state = WriterState.RUNNING
        self._closing = False
        self._error: Optional[BaseException] = None
        self._in_flight = 0
        self._sent = 0
        self._acknowledged = 0
        self._stream = open_stream(self)

    # StreamObserver (transport I/O thread)

    def on_next(self, ack: Any) -> None:
        with self._condition:
            if self._in_flight == 0:
                log.warning("Unexpected acknowledgment without pending writes")
                return
            self._in_flight -= 1
            self._acknowledged += 1
        self._permits.release()

    def on_completed(self) -> None:
        self._terminate(WriterState.COMPLETED, None)

    def on_error(self, error: BaseException) -> None:
        self._terminate(WriterState.ERRORED, error)

    # Internals

    def _terminate(self, state: WriterState, error: Optional[BaseException]) -> None:
        with self._condition:
            if self._state is not WriterState.RUNNING:
                return
            self._state = state
            self._error = error
            self._condition.notify_all()
        # Wake callers blocked on a permit so they observe the terminal state.
        for _ in range(self.max_in_flight):
            self._permits.release()
        log.debug(
            "Batch insert stream terminated",
            extra={"state": state.value, "sent": self._sent, "acknowledged": self._acknowledged},
        )

    def _failure(self, action: str) -> StreamClosed:
        if isinstance(self._error, TransportFailure):
            failure = StreamClosed(f"Cannot {action}: {self._error}", code=self._error.code)
        elif self._error is not None:
            failure = StreamClosed(f"Cannot {action}: batch insert stream failed: {self._error}")
        else:
            failure = StreamClosed(f"Cannot {action}: batch insert stream was closed by the server.")
        failure.__cause__ = self._error
        return failure

    def _ensure_open(self, action: str) -> None:
        """Must be called with the condition held."""
        if self._closing:
            raise ClosedWriter(f"Cannot {action} because client has been closed.")
        if self._state is not WriterState.RUNNING:
            raise self._failure(action)

    def _await_terminal(self, action: str) -> None:
        with self._condition:
            done = self._condition.wait_for(
                lambda: self._state is not WriterState.RUNNING, timeout=self._wait_timeout
            )
        if not done:
            raise TransportFailure(
                f"Timed out after {self._wait_timeout}s waiting for {action} to be confirmed.",
                code="DEADLINE_EXCEEDED",
            )

    def _signal(self, action: str, signal: Callable[[], None]) -> None:
        try:
            signal()
        except Exception as exc:
            self._terminate(WriterState.ERRORED, exc)
            raise TransportFailure(f"Failed to {action}: {exc}") from exc

    # Public API

    @property
    def state(self) -> WriterState:
        return self._state

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    @property
    def in_flight(self) -> int:
        """Number of writes sent but not yet acknowledged."""
        return self._in_flight

    @property
    def sent(self) -> int:
        return self._sent

    @property
    def acknowledged(self) -> int:
        return self._acknowledged

    def insert(self, message: InsertMessage) -> None:
        """
        Send one row, blocking while `max_in_flight` writes are unacknowledged.

        Raises
        ------
        ClosedWriter
            If `complete()` or `abort()` has been called, or the stream has
            already ended (`StreamClosed`, which keeps the status code).
        TransportFailure
            If no permit became available within `wait_timeout`.
        """
        with self._condition:
            self._ensure_open("perform INSERT")
        if not self._permits.acquire(timeout=self._wait_timeout):
            raise TransportFailure(
                f"Timed out after {self._wait_timeout}s waiting for a write permit "
                f"({self._in_flight} writes in flight).",
                code="DEADLINE_EXCEEDED",
            )
        with self._condition:
            try:
                self._ensure_open("perform INSERT")
            except Exception:
                self._permits.release()
                raise
            # Counted before sending so an early acknowledgment finds it.
            self._in_flight += 1
            self._sent += 1
        self._signal("send INSERT", lambda: self._stream.send(message))

    def complete(self) -> None:
        """
        Complete the INSERT stream, causing all changes to be committed.

        Blocks until the server confirms the terminal state.

        Raises
        ------
        ClosedWriter
            If the client has already been completed or aborted, or the
            stream has already ended (`StreamClosed`).
        TransportFailure
            If the stream ended with an error instead of a commit.
        """
        with self._condition:
            self._ensure_open("complete INSERT")
            self._closing = True
        self._signal("complete INSERT", self._stream.complete)
        self._await_terminal("commit")
        if self._state is WriterState.ERRORED:
            raise self._failure("commit INSERT")
        log.info(
            "Batch insert committed",
            extra={"sent": self._sent, "acknowledged": self._acknowledged},
        )

    def abort(self, reason: str = "Transaction was aborted by client.") -> None:
        """
        Abort the INSERT stream, causing all changes to be rolled back.

        Blocks until the server confirms the terminal state.

        Raises
        ------
        ClosedWriter
            If the client has already been completed or aborted.
        """
        with self._condition:
            self._ensure_open("abort INSERT")
            self._closing = True
        self._signal("abort INSERT", lambda: self._stream.abort(reason))
        self._await_terminal("abort")
        log.info(
            "Batch insert aborted",
            extra={"sent": self._sent, "acknowledged": self._acknowledged, "reason": reason},
        )

    def __enter__(self) -> "BatchInsertClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._closing or self._state is not WriterState.RUNNING:
            return
        if exc_type is None:
            self.complete()
        else:
            self.abort()


__all__ = ["BatchInsertClient", "StreamOpener", "WriterState"]
