"""
Integration tests for the gRPC transport.

These tests start an in-process gRPC server that speaks the JSON message
format of the client and verify that:
1. Queries stream every tuple across several response messages
2. Closing a result early cancels the call
3. Batched inserts are acknowledged and committed
4. Server failures surface as TransportFailure

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os
import threading
from concurrent import futures

import grpc
import pytest

from cottontail_client.client import SimpleClient
from cottontail_client.config import Settings
from cottontail_client.domain.literals import to_insert
from cottontail_client.domain.messages import (
    Empty,
    InsertAck,
    InsertMessage,
    RequestMessage,
    TransactionId,
)
from cottontail_client.errors import TransportFailure
from cottontail_client.infrastructure import transport as rpc

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS") != "1",
    reason="Integration tests disabled. Set RUN_INTEGRATION_TESTS=1 to enable.",
)

# Test configuration constants
ROWS_PER_MESSAGE = 3
MESSAGE_COUNT = 4
INSERT_ROWS = 50
MAX_IN_FLIGHT = 8
WAIT_TIMEOUT_SECONDS = 10.0
SERVER_WORKERS = 4
TRANSACTION_ID = 7

COLUMNS = [("warren.bunnies.id", "id"), ("warren.bunnies.name", "name")]


class _FakeCottontail:
    """Minimal server side of the query, insert and transaction calls."""

    def __init__(self, build_response) -> None:
        self.build_response = build_response
        self.inserted: list[InsertMessage] = []
        self.committed: list[int] = []
        self.finished = threading.Event()
        self.fail_inserts_after: int | None = None

    def query(self, request: RequestMessage, context: grpc.ServicerContext):
        context.add_callback(self.finished.set)
        for message in range(MESSAGE_COUNT):
            base = message * ROWS_PER_MESSAGE
            rows = [(base + i, f"bunny-{base + i}") for i in range(ROWS_PER_MESSAGE)]
            yield self.build_response(rows, COLUMNS, transaction_id=TRANSACTION_ID, query_id="q-1")

    def failing_query(self, request: RequestMessage, context: grpc.ServicerContext):
        yield self.build_response([(0, "bunny-0")], COLUMNS)
        context.abort(grpc.StatusCode.INTERNAL, "storage failure")

    def insert_batch(self, requests, context: grpc.ServicerContext):
        for message in requests:
            if self.fail_inserts_after is not None and len(self.inserted) >= self.fail_inserts_after:
                context.abort(grpc.StatusCode.ABORTED, "conflict")
            self.inserted.append(message)
            yield InsertAck()

    def ping(self, request: Empty, context: grpc.ServicerContext) -> Empty:
        return Empty()

    def begin(self, request: Empty, context: grpc.ServicerContext) -> TransactionId:
        return TransactionId(value=TRANSACTION_ID)

    def commit(self, request: TransactionId, context: grpc.ServicerContext) -> Empty:
        self.committed.append(request.value)
        return Empty()


def _handler(service: _FakeCottontail) -> grpc.GenericRpcHandler:
    def unary_stream(behaviour):
        return grpc.unary_stream_rpc_method_handler(
            behaviour,
            request_deserializer=rpc.deserializer(RequestMessage),
            response_serializer=rpc.serialize,
        )

    handlers = {
        "Query": unary_stream(service.query),
        "Explain": unary_stream(service.failing_query),
        "InsertBatch": grpc.stream_stream_rpc_method_handler(
            service.insert_batch,
            request_deserializer=rpc.deserializer(InsertMessage),
            response_serializer=rpc.serialize,
        ),
        "Ping": grpc.unary_unary_rpc_method_handler(
            service.ping,
            request_deserializer=rpc.deserializer(Empty),
            response_serializer=rpc.serialize,
        ),
        "Begin": grpc.unary_unary_rpc_method_handler(
            service.begin,
            request_deserializer=rpc.deserializer(Empty),
            response_serializer=rpc.serialize,
        ),
        "Commit": grpc.unary_unary_rpc_method_handler(
            service.commit,
            request_deserializer=rpc.deserializer(TransactionId),
            response_serializer=rpc.serialize,
        ),
    }

    class _Router(grpc.GenericRpcHandler):
        def service(self, handler_call_details):
            return handlers.get(handler_call_details.method.rsplit("/", 1)[-1])

    return _Router()


@pytest.fixture()
def server(make_response):
    service = _FakeCottontail(make_response)
    grpc_server = grpc.server(futures.ThreadPoolExecutor(max_workers=SERVER_WORKERS))
    grpc_server.add_generic_rpc_handlers((_handler(service),))
    port = grpc_server.add_insecure_port("localhost:0")
    grpc_server.start()
    try:
        yield service, port
    finally:
        grpc_server.stop(grace=None)


@pytest.fixture()
def client(server):
    _, port = server
    settings = Settings(COTTONTAIL_HOST="localhost", COTTONTAIL_PORT=port, BATCH_MAX_IN_FLIGHT=MAX_IN_FLIGHT)
    channel = grpc.insecure_channel(settings.address)
    with SimpleClient(settings, transport=rpc.GrpcTransport(settings, channel=channel)) as simple:
        simple.transport.connect()
        yield simple
    channel.close()


def test_query_streams_all_tuples(client):
    results = client.query(RequestMessage())

    ids = [record.as_long(0) for record in results]

    assert ids == list(range(ROWS_PER_MESSAGE * MESSAGE_COUNT))
    assert results.completed
    assert results.transaction_id == TRANSACTION_ID
    assert results.query_id == "q-1"
    assert results.simple == ["id", "name"]
    assert client.open_iterators == 0


def test_closing_result_early_releases_call(server, client):
    service, _ = server
    results = client.query(RequestMessage())

    assert results.next().as_string("name") == "bunny-0"
    results.close()

    assert service.finished.wait(WAIT_TIMEOUT_SECONDS)
    assert not results.has_next()
    assert client.open_iterators == 0


def test_server_failure_surfaces_as_transport_failure(client):
    results = client.explain(RequestMessage())

    assert results.next().as_long("id") == 0
    with pytest.raises(TransportFailure) as info:
        results.has_next()

    assert info.value.code == "INTERNAL"


def test_batch_insert_is_acknowledged_and_committed(server, client):
    service, _ = server
    txn = client.begin()

    writer = client.batch_insert(wait_timeout=WAIT_TIMEOUT_SECONDS)
    for i in range(INSERT_ROWS):
        writer.insert(to_insert("warren.bunnies", {"id": i, "name": f"bunny-{i}"}))
    writer.complete()
    client.commit(txn)

    assert len(service.inserted) == INSERT_ROWS
    assert writer.sent == INSERT_ROWS
    assert writer.acknowledged == INSERT_ROWS
    assert writer.in_flight == 0
    assert service.committed == [TRANSACTION_ID]


def test_batch_insert_server_abort_fails_writer(server, client):
    service, _ = server
    service.fail_inserts_after = 2

    writer = client.batch_insert(max_in_flight=1, wait_timeout=WAIT_TIMEOUT_SECONDS)
    with pytest.raises(TransportFailure):
        for i in range(INSERT_ROWS):
            writer.insert(to_insert("warren.bunnies", {"id": i}))
        writer.complete()

    assert writer.state.value == "errored"
    assert isinstance(writer.error, TransportFailure)
    assert writer.error.code == "ABORTED"


def test_ping_reaches_server(client):
    assert client.ping() is True
