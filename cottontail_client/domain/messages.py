"""
Wire models exchanged with the Cottontail DB server.

Every message is a frozen Pydantic model; the transport serializes them as
UTF-8 JSON. Literal payloads are kept loosely typed (`kind` tag plus `value`)
so that a response carrying a kind this client does not know still parses and
is rejected by the record decoder instead of the transport.
"""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from cottontail_client.domain.types import Type


class VectorData(BaseModel):
    """Homogeneous vector payload; `kind` names the element kind."""

    kind: str = Field(..., description="Element kind (boolean, int, long, float, double, complex32, complex64).")
    values: List[Any] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class LiteralData(BaseModel):
    """
    One typed field payload. A missing `kind` is the null literal.
    """

    kind: Optional[str] = Field(None, description="Literal kind tag; None encodes null.")
    value: Any = Field(None, description="Kind-specific payload.")
    vector: Optional[VectorData] = Field(None, description="Payload of `vector` literals.")

    model_config = ConfigDict(frozen=True)


class ColumnDescriptor(BaseModel):
    """Column metadata carried by the first message of a result."""

    schema_name: Optional[str] = Field(None, alias="schema")
    entity: Optional[str] = None
    name: str
    type: Type = Type.UNDEFINED
    nullable: bool = True

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @property
    def qualified_name(self) -> str:
        return ".".join(part for part in (self.schema_name, self.entity, self.name) if part)

    @property
    def simple_name(self) -> str:
        return self.name


class TupleData(BaseModel):
    data: List[LiteralData] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class ResponseMetadata(BaseModel):
    transaction_id: Optional[int] = None
    query_id: Optional[str] = None
    planning_time_ms: Optional[int] = None
    execution_time_ms: Optional[int] = None

    model_config = ConfigDict(frozen=True)


class QueryResponseMessage(BaseModel):
    """
    One batch of a (possibly multi-message) result stream.

    Only the metadata and columns of the first message of a stream are
    meaningful; later messages usually carry tuples only.
    """

    metadata: Optional[ResponseMetadata] = None
    columns: List[ColumnDescriptor] = Field(default_factory=list)
    tuples: List[TupleData] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class InsertElement(BaseModel):
    column: str
    value: LiteralData

    model_config = ConfigDict(frozen=True)


class InsertMessage(BaseModel):
    """A single row insert as sent over the batch insert stream."""

    entity: str
    elements: List[InsertElement] = Field(default_factory=list)
    metadata: Optional[ResponseMetadata] = None

    model_config = ConfigDict(frozen=True)


class Empty(BaseModel):
    """Message without payload, used by transaction calls."""

    model_config = ConfigDict(frozen=True, extra="allow")


class InsertAck(Empty):
    """Acknowledgment the server emits for every processed insert."""


class TransactionId(BaseModel):
    value: int

    model_config = ConfigDict(frozen=True)


class RequestMessage(BaseModel):
    """
    Fully-formed request produced by a query builder.

    The client forwards it verbatim and never inspects its fields.
    """

    model_config = ConfigDict(frozen=True, extra="allow")


__all__ = [
    "VectorData",
    "LiteralData",
    "ColumnDescriptor",
    "TupleData",
    "ResponseMetadata",
    "QueryResponseMessage",
    "InsertElement",
    "InsertMessage",
    "Empty",
    "InsertAck",
    "TransactionId",
    "RequestMessage",
]
