"""
Wire-level domain models and value types for the Cottontail DB client.
"""

from cottontail_client.domain.literals import to_insert, to_literal, to_vector
from cottontail_client.domain.messages import (
    ColumnDescriptor,
    Empty,
    InsertAck,
    InsertElement,
    InsertMessage,
    LiteralData,
    QueryResponseMessage,
    RequestMessage,
    ResponseMetadata,
    TransactionId,
    TupleData,
    VectorData,
)
from cottontail_client.domain.types import Complex32, Complex64, Type, ValueKind

__all__ = [
    # Messages
    "ColumnDescriptor",
    "Empty",
    "InsertAck",
    "InsertElement",
    "InsertMessage",
    "LiteralData",
    "QueryResponseMessage",
    "RequestMessage",
    "ResponseMetadata",
    "TransactionId",
    "TupleData",
    "VectorData",
    # Value types
    "Complex32",
    "Complex64",
    "Type",
    "ValueKind",
    # Encoders
    "to_insert",
    "to_literal",
    "to_vector",
]
