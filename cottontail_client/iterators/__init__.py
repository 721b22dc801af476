"""
Result-decoding iterators.

This module re-exports the record type, the column index and the concrete
iterators so downstream code can import from `cottontail_client.iterators`.
"""

from cottontail_client.iterators.asynchronous import AsyncTupleIterator
from cottontail_client.iterators.base import CompletionCallback, ResultMetadataMixin, TupleIterator
from cottontail_client.iterators.column_index import ColumnIndex
from cottontail_client.iterators.synchronous import SynchronousTupleIterator
from cottontail_client.iterators.tuple import Tuple, Value, decode_literal

__all__ = [
    # Interfaces
    "CompletionCallback",
    "ResultMetadataMixin",
    "TupleIterator",
    # Records
    "ColumnIndex",
    "Tuple",
    "Value",
    "decode_literal",
    # Concrete iterators
    "AsyncTupleIterator",
    "SynchronousTupleIterator",
]
