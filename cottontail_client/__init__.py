"""
Cottontail DB client - streaming result decoding and batched writes.

This package provides the client-side consumption and production protocol
for a Cottontail DB server reached over gRPC:

- Pull iterators that decode streamed result batches into typed tuples
  with column-name resolution
- A batched insert writer with bounded in-flight writes and backpressure
- A simple client facade, configuration, logging and a small CLI
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from cottontail_client.batch_insert import BatchInsertClient, WriterState
from cottontail_client.client import SimpleClient
from cottontail_client.config import Settings, get_settings
from cottontail_client.domain import (
    ColumnDescriptor,
    Complex32,
    Complex64,
    InsertMessage,
    LiteralData,
    QueryResponseMessage,
    RequestMessage,
    Type,
    ValueKind,
    to_insert,
    to_literal,
)
from cottontail_client.errors import (
    ClosedWriter,
    CottontailClientError,
    IteratorDrained,
    MalformedTuple,
    StreamClosed,
    TransportFailure,
    UnknownColumn,
    UnsupportedKind,
)
from cottontail_client.iterators import (
    AsyncTupleIterator,
    ColumnIndex,
    SynchronousTupleIterator,
    Tuple,
    TupleIterator,
)
from cottontail_client.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Client
    "SimpleClient",
    "BatchInsertClient",
    "WriterState",
    # Iterators and records
    "AsyncTupleIterator",
    "ColumnIndex",
    "SynchronousTupleIterator",
    "Tuple",
    "TupleIterator",
    # Wire format
    "ColumnDescriptor",
    "Complex32",
    "Complex64",
    "InsertMessage",
    "LiteralData",
    "QueryResponseMessage",
    "RequestMessage",
    "Type",
    "ValueKind",
    "to_insert",
    "to_literal",
    # Errors
    "CottontailClientError",
    "ClosedWriter",
    "StreamClosed",
    "IteratorDrained",
    "MalformedTuple",
    "TransportFailure",
    "UnknownColumn",
    "UnsupportedKind",
    # Logging
    "configure_logging",
    "get_logger",
]
