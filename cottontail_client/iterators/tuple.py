"""
Record decoder: turns one wire-format row into an immutable, typed `Tuple`.

Every field is decoded eagerly into a `Value`, a (kind, data) pair. Typed
accessors compare the requested kind against that tag and return None on a
mismatch, which lets callers probe column types without catching exceptions.
Name-based access goes through the `ColumnIndex` shared by all tuples of a
result.
"""

from __future__ import annotations

import base64
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Union

from cottontail_client.domain.messages import LiteralData, TupleData, VectorData
from cottontail_client.domain.types import Complex32, Complex64, Type, ValueKind
from cottontail_client.errors import MalformedTuple, UnsupportedKind
from cottontail_client.iterators.column_index import ColumnIndex

Key = Union[int, str]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Value(NamedTuple):
    """A decoded field: runtime kind tag plus Python payload."""

    kind: ValueKind
    data: Any


NULL = Value(ValueKind.NULL, None)


def _complex32(payload: Sequence[float]) -> Complex32:
    real, imaginary = payload
    return Complex32(float(real), float(imaginary))


def _complex64(payload: Sequence[float]) -> Complex64:
    real, imaginary = payload
    return Complex64(float(real), float(imaginary))


_SCALAR_DECODERS: Dict[ValueKind, Callable[[Any], Any]] = {
    ValueKind.BOOLEAN: bool,
    ValueKind.BYTE: int,
    ValueKind.SHORT: int,
    ValueKind.INT: int,
    ValueKind.LONG: int,
    ValueKind.FLOAT: float,
    ValueKind.DOUBLE: float,
    ValueKind.DATE: lambda millis: _EPOCH + timedelta(milliseconds=int(millis)),
    ValueKind.STRING: str,
    ValueKind.BYTE_STRING: lambda text: base64.b64decode(text),
    ValueKind.COMPLEX32: _complex32,
    ValueKind.COMPLEX64: _complex64,
}


def _decode_vector(vector: Optional[VectorData]) -> Value:
    if vector is None:
        raise UnsupportedKind(None, vector=True)
    try:
        kind = ValueKind(f"{vector.kind}_vector")
    except ValueError:
        raise UnsupportedKind(vector.kind, vector=True) from None
    convert = _SCALAR_DECODERS[kind.element_kind]
    return Value(kind, tuple(convert(v) for v in vector.values))


def decode_literal(literal: LiteralData) -> Value:
    """
    Decode one field payload.

    Raises
    ------
    UnsupportedKind
        If the literal (or vector element) kind has no known decoding.
    """
    if literal.kind is None or literal.kind == ValueKind.NULL.value:
        return NULL
    if literal.kind == "vector":
        return _decode_vector(literal.vector)
    try:
        kind = ValueKind(literal.kind)
    except ValueError:
        raise UnsupportedKind(literal.kind) from None
    if kind.is_vector:
        # Vector kinds are only valid inside a `vector` literal.
        raise UnsupportedKind(literal.kind)
    return Value(kind, _SCALAR_DECODERS[kind](literal.value))


class Tuple:
    """
    A single decoded row of a result set.

    Immutable and fixed-length: `len(tuple) == number of result columns`.
    """

    __slots__ = ("_values", "_index")

    def __init__(self, values: Sequence[Value], index: ColumnIndex) -> None:
        self._values = tuple(values)
        self._index = index

    @classmethod
    def decode(cls, raw: TupleData, index: ColumnIndex) -> "Tuple":
        # An empty index means the result declared no columns to check against.
        if len(index) and len(raw.data) != len(index):
            raise MalformedTuple(len(raw.data), len(index))
        return cls([decode_literal(literal) for literal in raw.data], index)

    def _position(self, key: Key) -> int:
        if isinstance(key, str):
            return self._index.resolve(key)
        return key

    def _as(self, key: Key, kind: ValueKind) -> Any:
        value = self._values[self._position(key)]
        return value.data if value.kind is kind else None

    # Metadata

    def size(self) -> int:
        return len(self._values)

    def index_for_name(self, name: str) -> int:
        return self._index.resolve(name)

    def name_for_index(self, index: int) -> str:
        return self._index.name_for_index(index)

    def simple_name_for_index(self, index: int) -> str:
        return self._index.simple_name_for_index(index)

    def type(self, key: Key) -> Type:
        """Declared column type as reported by the server."""
        return self._index.type_for_index(self._position(key))

    def kind(self, key: Key) -> ValueKind:
        """Runtime kind of the decoded value (NULL for null fields)."""
        return self._values[self._position(key)].kind

    def is_null(self, key: Key) -> bool:
        return self.kind(key) is ValueKind.NULL

    def values(self) -> List[Any]:
        return [value.data for value in self._values]

    def as_dict(self) -> Dict[str, Any]:
        """Map of qualified column name to decoded value."""
        return {self._index.name_for_index(i): v.data for i, v in enumerate(self._values)}

    # Typed accessors

    def as_boolean(self, key: Key) -> Optional[bool]:
        return self._as(key, ValueKind.BOOLEAN)

    def as_byte(self, key: Key) -> Optional[int]:
        return self._as(key, ValueKind.BYTE)

    def as_short(self, key: Key) -> Optional[int]:
        return self._as(key, ValueKind.SHORT)

    def as_int(self, key: Key) -> Optional[int]:
        return self._as(key, ValueKind.INT)

    def as_long(self, key: Key) -> Optional[int]:
        return self._as(key, ValueKind.LONG)

    def as_float(self, key: Key) -> Optional[float]:
        return self._as(key, ValueKind.FLOAT)

    def as_double(self, key: Key) -> Optional[float]:
        return self._as(key, ValueKind.DOUBLE)

    def as_string(self, key: Key) -> Optional[str]:
        return self._as(key, ValueKind.STRING)

    def as_date(self, key: Key) -> Optional[datetime]:
        return self._as(key, ValueKind.DATE)

    def as_byte_string(self, key: Key) -> Optional[bytes]:
        return self._as(key, ValueKind.BYTE_STRING)

    def as_complex32(self, key: Key) -> Optional[Complex32]:
        return self._as(key, ValueKind.COMPLEX32)

    def as_complex64(self, key: Key) -> Optional[Complex64]:
        return self._as(key, ValueKind.COMPLEX64)

    def as_boolean_vector(self, key: Key) -> Optional[tuple[bool, ...]]:
        return self._as(key, ValueKind.BOOLEAN_VECTOR)

    def as_int_vector(self, key: Key) -> Optional[tuple[int, ...]]:
        return self._as(key, ValueKind.INT_VECTOR)

    def as_long_vector(self, key: Key) -> Optional[tuple[int, ...]]:
        return self._as(key, ValueKind.LONG_VECTOR)

    def as_float_vector(self, key: Key) -> Optional[tuple[float, ...]]:
        return self._as(key, ValueKind.FLOAT_VECTOR)

    def as_double_vector(self, key: Key) -> Optional[tuple[float, ...]]:
        return self._as(key, ValueKind.DOUBLE_VECTOR)

    def as_complex32_vector(self, key: Key) -> Optional[tuple[Complex32, ...]]:
        return self._as(key, ValueKind.COMPLEX32_VECTOR)

    def as_complex64_vector(self, key: Key) -> Optional[tuple[Complex64, ...]]:
        return self._as(key, ValueKind.COMPLEX64_VECTOR)

    # Dunder

    def __getitem__(self, key: Key) -> Any:
        return self._values[self._position(key)].data

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self):
        return iter(self.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tuple):
            return NotImplemented
        return self._values == other._values

    def __hash__(self) -> int:
        return hash(self._values)

    def __str__(self) -> str:
        return ", ".join("<null>" if v.kind is ValueKind.NULL else str(v.data) for v in self._values)

    def __repr__(self) -> str:
        return f"Tuple({self})"


__all__ = ["Key", "Tuple", "Value", "decode_literal"]
