"""
gRPC transport for the Cottontail DB client.

Provides centralized management of `grpc.Channel`s with proper lifecycle
management (the ChannelManager singleton closes them on exit), a readiness
check with retry for transient connection failures using tenacity, and
`GrpcTransport`, which opens the unary, server-streaming and bidirectional
calls the client needs. Messages are Pydantic models serialized as JSON, so
no generated stubs are required.

Every `grpc.RpcError` crossing this module is converted into
`TransportFailure`.
"""

from __future__ import annotations

import atexit
import queue
import threading
from typing import Any, Dict, Iterator, Optional, Protocol, Tuple, Type, TypeVar, runtime_checkable

import grpc
from pydantic import BaseModel
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from cottontail_client.config import Settings, get_settings
from cottontail_client.domain.messages import Empty, InsertAck, InsertMessage, QueryResponseMessage, TransactionId
from cottontail_client.errors import TransportFailure
from cottontail_client.utils.logging import get_logger

log = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

# Fully-qualified RPC method names.
DQL_QUERY = "/org.vitrivr.cottontail.grpc.DQL/Query"
DQL_BATCH_QUERY = "/org.vitrivr.cottontail.grpc.DQL/BatchQuery"
DQL_EXPLAIN = "/org.vitrivr.cottontail.grpc.DQL/Explain"
DQL_PING = "/org.vitrivr.cottontail.grpc.DQL/Ping"
DML_INSERT = "/org.vitrivr.cottontail.grpc.DML/Insert"
DML_INSERT_BATCH = "/org.vitrivr.cottontail.grpc.DML/InsertBatch"
DML_UPDATE = "/org.vitrivr.cottontail.grpc.DML/Update"
DML_DELETE = "/org.vitrivr.cottontail.grpc.DML/Delete"
TXN_BEGIN = "/org.vitrivr.cottontail.grpc.TXN/Begin"
TXN_COMMIT = "/org.vitrivr.cottontail.grpc.TXN/Commit"
TXN_ROLLBACK = "/org.vitrivr.cottontail.grpc.TXN/Rollback"
DDL_CREATE_SCHEMA = "/org.vitrivr.cottontail.grpc.DDL/CreateSchema"
DDL_CREATE_ENTITY = "/org.vitrivr.cottontail.grpc.DDL/CreateEntity"
DDL_CREATE_INDEX = "/org.vitrivr.cottontail.grpc.DDL/CreateIndex"
DDL_DROP_SCHEMA = "/org.vitrivr.cottontail.grpc.DDL/DropSchema"
DDL_DROP_ENTITY = "/org.vitrivr.cottontail.grpc.DDL/DropEntity"
DDL_DROP_INDEX = "/org.vitrivr.cottontail.grpc.DDL/DropIndex"
DDL_LIST_SCHEMAS = "/org.vitrivr.cottontail.grpc.DDL/ListSchemas"
DDL_LIST_ENTITIES = "/org.vitrivr.cottontail.grpc.DDL/ListEntities"
DDL_ENTITY_DETAILS = "/org.vitrivr.cottontail.grpc.DDL/EntityDetails"
DDL_TRUNCATE_ENTITY = "/org.vitrivr.cottontail.grpc.DDL/TruncateEntity"
DDL_OPTIMIZE_ENTITY = "/org.vitrivr.cottontail.grpc.DDL/OptimizeEntity"


# Stream contracts


@runtime_checkable
class MessageSource(Protocol):
    """Response messages of a server-streaming call; `cancel()` releases the call."""

    def __iter__(self) -> Iterator[QueryResponseMessage]:
        ...

    def __next__(self) -> QueryResponseMessage:
        ...

    def cancel(self) -> None:
        ...


@runtime_checkable
class StreamObserver(Protocol):
    """Receives server acknowledgments and the terminal signal of a duplex call."""

    def on_next(self, ack: Any) -> None:
        ...

    def on_completed(self) -> None:
        ...

    def on_error(self, error: BaseException) -> None:
        ...


@runtime_checkable
class WriteStream(Protocol):
    """Client half of a duplex call."""

    def send(self, message: Any) -> None:
        ...

    def complete(self) -> None:
        ...

    def abort(self, reason: str) -> None:
        ...


# Serialization


def serialize(message: BaseModel) -> bytes:
    return message.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")


def deserializer(model: Type[M]):
    def _deserialize(payload: bytes) -> M:
        return model.model_validate_json(payload)

    return _deserialize


def _status_name(error: grpc.RpcError) -> Optional[str]:
    code = error.code() if callable(getattr(error, "code", None)) else None
    return code.name if code is not None else None


def to_transport_failure(error: grpc.RpcError, action: str) -> TransportFailure:
    details = error.details() if callable(getattr(error, "details", None)) else str(error)
    failure = TransportFailure(f"{action} failed: {details}", code=_status_name(error))
    failure.__cause__ = error
    return failure


# Channels


class ChannelManager:
    """
    Thread-safe singleton for managing gRPC channels per address.

    Handles lifecycle management with automatic cleanup via atexit hook.
    """

    _instance: Optional["ChannelManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ChannelManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._channels: Dict[Tuple[str, bool], grpc.Channel] = {}
                atexit.register(cls._instance.close_all)
            return cls._instance

    def get_channel(self, settings: Optional[Settings] = None) -> grpc.Channel:
        """
        Get or create the channel for the configured address.

        Parameters
        ----------
        settings : Settings, optional
            Connection settings; defaults to `get_settings()`.
        """
        settings = settings or get_settings()
        key = (settings.address, settings.plaintext)
        with self._lock:
            channel = self._channels.get(key)
            if channel is None:
                options = [
                    ("grpc.max_send_message_length", settings.max_message_bytes),
                    ("grpc.max_receive_message_length", settings.max_message_bytes),
                ]
                if settings.plaintext:
                    channel = grpc.insecure_channel(settings.address, options=options)
                else:
                    channel = grpc.secure_channel(
                        settings.address, grpc.ssl_channel_credentials(), options=options
                    )
                self._channels[key] = channel
                log.debug("gRPC channel created", extra={"address": settings.address})
            return channel

    def close_all(self) -> None:
        """
        Close all managed channels. Called automatically on exit via atexit hook.
        """
        with self._lock:
            channels = list(self._channels.values())
            self._channels.clear()
        for channel in channels:
            channel.close()


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(grpc.FutureTimeoutError),
    reraise=True,
)
def wait_for_ready(channel: grpc.Channel, timeout: float) -> None:
    """
    Block until `channel` is connected, retrying up to 3 times with exponential backoff.

    Raises
    ------
    grpc.FutureTimeoutError
        If the channel does not become ready after all retry attempts.
    """
    grpc.channel_ready_future(channel).result(timeout=timeout)


# Calls


class ResponseStream:
    """
    Iterator over the responses of a server-streaming call.

    Converts `grpc.RpcError` into `TransportFailure` and exposes `cancel()` so
    a tuple iterator can release the call when it is closed early.
    """

    def __init__(self, call: Any, action: str) -> None:
        self._call = call
        self._action = action

    def __iter__(self) -> "ResponseStream":
        return self

    def __next__(self) -> QueryResponseMessage:
        try:
            return next(self._call)
        except grpc.RpcError as exc:
            raise to_transport_failure(exc, self._action) from exc

    def cancel(self) -> None:
        self._call.cancel()


_END_OF_STREAM = object()


class GrpcWriteStream:
    """
    Client half of a bidirectional batch insert call.

    Requests are handed to gRPC through a queue-backed generator; a daemon
    thread drains the response iterator and forwards acknowledgments and the
    terminal signal to the observer.
    """

    def __init__(self, channel: grpc.Channel, observer: StreamObserver, method: str = DML_INSERT_BATCH) -> None:
        self._requests: "queue.Queue[Any]" = queue.Queue()
        self._observer = observer
        multi_callable = channel.stream_stream(
            method,
            request_serializer=serialize,
            response_deserializer=deserializer(InsertAck),
        )
        self._call = multi_callable(self._request_iterator())
        self._reader = threading.Thread(
            target=self._read_responses, name="cottontail-batch-insert", daemon=True
        )
        self._reader.start()

    def _request_iterator(self) -> Iterator[InsertMessage]:
        while True:
            message = self._requests.get()
            if message is _END_OF_STREAM:
                return
            yield message

    def _read_responses(self) -> None:
        try:
            for ack in self._call:
                self._observer.on_next(ack)
        except grpc.RpcError as exc:
            # gRPC stops consuming requests once the call fails; release the generator.
            self._requests.put(_END_OF_STREAM)
            self._observer.on_error(to_transport_failure(exc, "Batch insert"))
        else:
            self._observer.on_completed()

    def send(self, message: InsertMessage) -> None:
        self._requests.put(message)

    def complete(self) -> None:
        self._requests.put(_END_OF_STREAM)

    def abort(self, reason: str) -> None:
        log.debug("Cancelling batch insert call", extra={"reason": reason})
        self._call.cancel()
        self._requests.put(_END_OF_STREAM)


class GrpcTransport:
    """
    Opens Cottontail DB calls on one gRPC channel.

    Parameters
    ----------
    settings : Settings, optional
        Connection settings; defaults to `get_settings()`.
    channel : grpc.Channel, optional
        Pre-built channel (e.g. for tests); otherwise obtained from ChannelManager.
    """

    def __init__(self, settings: Optional[Settings] = None, channel: Optional[grpc.Channel] = None) -> None:
        self.settings = settings or get_settings()
        self.channel = channel or ChannelManager().get_channel(self.settings)

    def connect(self) -> None:
        """Block until the channel is ready; raises TransportFailure otherwise."""
        try:
            wait_for_ready(self.channel, self.settings.connect_timeout_seconds)
        except grpc.FutureTimeoutError as exc:
            raise TransportFailure(
                f"Could not connect to {self.settings.address}.", code="UNAVAILABLE"
            ) from exc

    def server_stream(self, method: str, request: BaseModel) -> MessageSource:
        multi_callable = self.channel.unary_stream(
            method,
            request_serializer=serialize,
            response_deserializer=deserializer(QueryResponseMessage),
        )
        return ResponseStream(multi_callable(request), action=method)

    def unary(self, method: str, request: BaseModel, response: Type[M]) -> M:
        multi_callable = self.channel.unary_unary(
            method,
            request_serializer=serialize,
            response_deserializer=deserializer(response),
        )
        try:
            return multi_callable(request)
        except grpc.RpcError as exc:
            raise to_transport_failure(exc, method) from exc

    def open_insert_stream(self, observer: StreamObserver) -> GrpcWriteStream:
        return GrpcWriteStream(self.channel, observer)

    def ping(self) -> None:
        self.unary(DQL_PING, Empty(), Empty)

    def begin(self) -> TransactionId:
        return self.unary(TXN_BEGIN, Empty(), TransactionId)

    def commit(self, txn: TransactionId) -> None:
        self.unary(TXN_COMMIT, txn, Empty)

    def rollback(self, txn: TransactionId) -> None:
        self.unary(TXN_ROLLBACK, txn, Empty)


__all__ = [
    "ChannelManager",
    "MessageSource",
    "GrpcTransport",
    "GrpcWriteStream",
    "ResponseStream",
    "StreamObserver",
    "WriteStream",
    "deserializer",
    "serialize",
    "to_transport_failure",
    "wait_for_ready",
]
