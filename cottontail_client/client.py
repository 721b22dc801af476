"""
High-level client facade for Cottontail DB.

Wraps a `GrpcTransport` and turns its raw response streams into
`SynchronousTupleIterator`s. The client keeps track of iterators that are
still open so that `close()` can release their calls; each iterator removes
itself through its completion callback.

Usage:
    from cottontail_client import SimpleClient

    with SimpleClient() as client:
        with client.query(request) as results:
            for tuple in results:
                print(tuple.as_dict())
"""

from __future__ import annotations

import threading
from typing import Optional, Set

from pydantic import BaseModel

from cottontail_client.batch_insert import BatchInsertClient
from cottontail_client.config import Settings, get_settings
from cottontail_client.domain.messages import TransactionId
from cottontail_client.errors import TransportFailure
from cottontail_client.infrastructure import transport as rpc
from cottontail_client.iterators.synchronous import SynchronousTupleIterator
from cottontail_client.utils.logging import get_logger

log = get_logger(__name__)


class SimpleClient:
    """
    A simple Cottontail DB client for querying and data management.

    Parameters
    ----------
    settings : Settings, optional
        Connection settings; defaults to `get_settings()`.
    transport : GrpcTransport, optional
        Transport to use; built from `settings` when omitted.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[rpc.GrpcTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.transport = transport or rpc.GrpcTransport(self.settings)
        self._open: Set[SynchronousTupleIterator] = set()
        self._lock = threading.Lock()
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("SimpleClient has been closed.")

    def _on_complete(self, iterator: SynchronousTupleIterator, aborted: bool) -> None:
        with self._lock:
            self._open.discard(iterator)
        log.debug(
            "Result released",
            extra={"query_id": iterator.query_id, "aborted": aborted, "open": len(self._open)},
        )

    def _execute(self, method: str, request: BaseModel) -> SynchronousTupleIterator:
        self._check_open()
        iterator = SynchronousTupleIterator(
            self.transport.server_stream(method, request), on_complete=self._on_complete
        )
        if not iterator.closed:
            with self._lock:
                self._open.add(iterator)
        return iterator

    # Transactions

    def begin(self) -> int:
        """Begins a new transaction and returns its ID."""
        self._check_open()
        return self.transport.begin().value

    def commit(self, txn_id: int) -> None:
        self._check_open()
        self.transport.commit(TransactionId(value=txn_id))

    def rollback(self, txn_id: int) -> None:
        self._check_open()
        self.transport.rollback(TransactionId(value=txn_id))

    # Queries and data manipulation

    def query(self, request: BaseModel) -> SynchronousTupleIterator:
        return self._execute(rpc.DQL_QUERY, request)

    def batched_query(self, request: BaseModel) -> SynchronousTupleIterator:
        return self._execute(rpc.DQL_BATCH_QUERY, request)

    def explain(self, request: BaseModel) -> SynchronousTupleIterator:
        return self._execute(rpc.DQL_EXPLAIN, request)

    def insert(self, request: BaseModel) -> SynchronousTupleIterator:
        return self._execute(rpc.DML_INSERT, request)

    def update(self, request: BaseModel) -> SynchronousTupleIterator:
        return self._execute(rpc.DML_UPDATE, request)

    def delete(self, request: BaseModel) -> SynchronousTupleIterator:
        return self._execute(rpc.DML_DELETE, request)

    # Data definition and maintenance

    def create_schema(self, request: BaseModel) -> SynchronousTupleIterator:
        return self._execute(rpc.DDL_CREATE_SCHEMA, request)

    def create_entity(self, request: BaseModel) -> SynchronousTupleIterator:
        return self._execute(rpc.DDL_CREATE_ENTITY, request)

    def create_index(self, request: BaseModel) -> SynchronousTupleIterator:
        return self._execute(rpc.DDL_CREATE_INDEX, request)

    def drop_schema(self, request: BaseModel) -> SynchronousTupleIterator:
        return self._execute(rpc.DDL_DROP_SCHEMA, request)

    def drop_entity(self, request: BaseModel) -> SynchronousTupleIterator:
        return self._execute(rpc.DDL_DROP_ENTITY, request)

    def drop_index(self, request: BaseModel) -> SynchronousTupleIterator:
        return self._execute(rpc.DDL_DROP_INDEX, request)

    def list_schemas(self, request: BaseModel) -> SynchronousTupleIterator:
        return self._execute(rpc.DDL_LIST_SCHEMAS, request)

    def list_entities(self, request: BaseModel) -> SynchronousTupleIterator:
        """Lists the entities of the schema named in `request`."""
        return self._execute(rpc.DDL_LIST_ENTITIES, request)

    def about(self, request: BaseModel) -> SynchronousTupleIterator:
        """Lists detailed information about an entity."""
        return self._execute(rpc.DDL_ENTITY_DETAILS, request)

    def truncate(self, request: BaseModel) -> SynchronousTupleIterator:
        return self._execute(rpc.DDL_TRUNCATE_ENTITY, request)

    def optimize(self, request: BaseModel) -> SynchronousTupleIterator:
        return self._execute(rpc.DDL_OPTIMIZE_ENTITY, request)

    def ping(self) -> bool:
        """Returns True if the server answers, False if the call fails."""
        self._check_open()
        try:
            self.transport.ping()
        except TransportFailure as exc:
            log.debug("Ping failed", extra={"code": exc.code})
            return False
        return True

    def batch_insert(
        self,
        max_in_flight: Optional[int] = None,
        wait_timeout: Optional[float] = None,
    ) -> BatchInsertClient:
        """
        Open a batched insert stream.

        Parameters
        ----------
        max_in_flight : int, optional
            Maximum number of unacknowledged writes; defaults to `Settings.batch_max_in_flight`.
        wait_timeout : float, optional
            Bound for blocking waits; defaults to `Settings.batch_wait_timeout_seconds`.
        """
        self._check_open()
        return BatchInsertClient(
            self.transport.open_insert_stream,
            max_in_flight=max_in_flight if max_in_flight is not None else self.settings.batch_max_in_flight,
            wait_timeout=wait_timeout if wait_timeout is not None else self.settings.batch_wait_timeout_seconds,
        )

    # Lifecycle

    @property
    def open_iterators(self) -> int:
        with self._lock:
            return len(self._open)

    def close(self) -> None:
        """Close all iterators that are still open. Idempotent."""
        if self._closed:
            return
        self._closed = True
        with self._lock:
            pending = list(self._open)
        for iterator in pending:
            iterator.close()
        log.debug("SimpleClient closed", extra={"released": len(pending)})

    def __enter__(self) -> "SimpleClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["SimpleClient"]
