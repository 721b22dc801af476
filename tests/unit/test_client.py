from __future__ import annotations

from typing import Any

import pytest

from cottontail_client.batch_insert import BatchInsertClient
from cottontail_client.client import SimpleClient
from cottontail_client.domain.messages import RequestMessage, TransactionId
from cottontail_client.errors import TransportFailure
from cottontail_client.infrastructure import transport as rpc

TRANSACTION_ID = 7


class _FakeStream:
    def __init__(self, messages: list[Any]) -> None:
        self._messages = iter(messages)
        self.cancelled = False

    def __iter__(self) -> "_FakeStream":
        return self

    def __next__(self) -> Any:
        return next(self._messages)

    def cancel(self) -> None:
        self.cancelled = True


class _FakeTransport:
    def __init__(self, responses: list[Any]) -> None:
        self.responses = responses
        self.reachable = True
        self.calls: list[tuple[str, Any]] = []
        self.streams: list[_FakeStream] = []

    def server_stream(self, method: str, request: Any) -> _FakeStream:
        self.calls.append((method, request))
        stream = _FakeStream(self.responses)
        self.streams.append(stream)
        return stream

    def ping(self) -> None:
        self.calls.append(("ping", None))
        if not self.reachable:
            raise TransportFailure("Ping failed", code="UNAVAILABLE")

    def begin(self) -> TransactionId:
        self.calls.append(("begin", None))
        return TransactionId(value=TRANSACTION_ID)

    def commit(self, txn: TransactionId) -> None:
        self.calls.append(("commit", txn))

    def rollback(self, txn: TransactionId) -> None:
        self.calls.append(("rollback", txn))

    def open_insert_stream(self, observer: Any) -> Any:
        self.calls.append(("insert_batch", observer))
        return object()


@pytest.mark.parametrize(
    "operation, method",
    [
        ("query", rpc.DQL_QUERY),
        ("batched_query", rpc.DQL_BATCH_QUERY),
        ("explain", rpc.DQL_EXPLAIN),
        ("insert", rpc.DML_INSERT),
        ("update", rpc.DML_UPDATE),
        ("delete", rpc.DML_DELETE),
        ("create_schema", rpc.DDL_CREATE_SCHEMA),
        ("create_entity", rpc.DDL_CREATE_ENTITY),
        ("create_index", rpc.DDL_CREATE_INDEX),
        ("drop_schema", rpc.DDL_DROP_SCHEMA),
        ("drop_entity", rpc.DDL_DROP_ENTITY),
        ("drop_index", rpc.DDL_DROP_INDEX),
        ("list_schemas", rpc.DDL_LIST_SCHEMAS),
        ("list_entities", rpc.DDL_LIST_ENTITIES),
        ("about", rpc.DDL_ENTITY_DETAILS),
        ("truncate", rpc.DDL_TRUNCATE_ENTITY),
        ("optimize", rpc.DDL_OPTIMIZE_ENTITY),
    ],
)
def test_operations_use_expected_rpc_method(make_response, test_settings, operation, method):
    transport = _FakeTransport([make_response([(1,)], columns=[("t.n", "n")])])
    client = SimpleClient(test_settings, transport=transport)
    request = RequestMessage(entity="warren.t")

    results = getattr(client, operation)(request)

    assert transport.calls == [(method, request)]
    assert [r.as_long("n") for r in results] == [1]


def test_exhausted_iterators_unregister_themselves(make_response, test_settings):
    transport = _FakeTransport([make_response([(1,)], columns=[("t.n", "n")])])
    client = SimpleClient(test_settings, transport=transport)

    results = client.query(RequestMessage())
    assert client.open_iterators == 1
    list(results)

    assert client.open_iterators == 0


def test_close_releases_open_iterators(make_response, test_settings):
    transport = _FakeTransport([make_response([(1,), (2,)], columns=[("t.n", "n")]), make_response([(3,)])])
    client = SimpleClient(test_settings, transport=transport)
    results = client.query(RequestMessage())

    client.close()

    assert results.closed
    assert transport.streams[0].cancelled
    assert client.open_iterators == 0
    with pytest.raises(RuntimeError):
        client.query(RequestMessage())


def test_transactions_are_forwarded(test_settings):
    transport = _FakeTransport([])
    with SimpleClient(test_settings, transport=transport) as client:
        txn = client.begin()
        client.commit(txn)
        client.rollback(txn)

    assert txn == TRANSACTION_ID
    assert transport.calls[1:] == [
        ("commit", TransactionId(value=TRANSACTION_ID)),
        ("rollback", TransactionId(value=TRANSACTION_ID)),
    ]


def test_batch_insert_uses_configured_max_in_flight(test_settings):
    transport = _FakeTransport([])
    client = SimpleClient(test_settings, transport=transport)

    writer = client.batch_insert()

    assert isinstance(writer, BatchInsertClient)
    assert writer.max_in_flight == test_settings.batch_max_in_flight
    assert transport.calls[0][1] is writer


def test_ping_reports_reachability(test_settings):
    transport = _FakeTransport([])
    client = SimpleClient(test_settings, transport=transport)

    assert client.ping() is True
    transport.reachable = False
    assert client.ping() is False
    assert transport.calls == [("ping", None), ("ping", None)]


def test_explicit_zero_max_in_flight_is_not_replaced_by_default(test_settings):
    client = SimpleClient(test_settings, transport=_FakeTransport([]))

    with pytest.raises(ValueError):
        client.batch_insert(max_in_flight=0)
