"""
Helpers that convert Python values into wire literals.

Inverse of the record decoder: `to_literal(value)` picks a literal kind from
the Python type unless an explicit `kind` is given, so callers can force e.g.
a 32-bit `int` column or a `float` (single precision) vector.
"""

from __future__ import annotations

import base64
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence

from cottontail_client.domain.messages import InsertElement, InsertMessage, LiteralData, VectorData
from cottontail_client.domain.types import Complex32, Complex64, ValueKind

_SCALAR_KINDS = {kind for kind in ValueKind if not kind.is_vector and kind is not ValueKind.NULL}
_VECTOR_ELEMENT_KINDS = {kind.element_kind for kind in ValueKind if kind.is_vector}
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _date_to_millis(value: datetime) -> int:
    # Naive datetimes are taken as UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // timedelta(milliseconds=1)


def _complex_pair(value: Any) -> list[float]:
    if isinstance(value, (Complex32, Complex64)):
        return [float(value.real), float(value.imaginary)]
    value = complex(value)
    return [value.real, value.imag]


def _scalar_payload(kind: ValueKind, value: Any) -> Any:
    if kind is ValueKind.BOOLEAN:
        return bool(value)
    if kind in (ValueKind.BYTE, ValueKind.SHORT, ValueKind.INT, ValueKind.LONG):
        return int(value)
    if kind in (ValueKind.FLOAT, ValueKind.DOUBLE):
        return float(value)
    if kind is ValueKind.DATE:
        return _date_to_millis(value) if isinstance(value, datetime) else int(value)
    if kind is ValueKind.STRING:
        return str(value)
    if kind is ValueKind.BYTE_STRING:
        return base64.b64encode(bytes(value)).decode("ascii")
    return _complex_pair(value)


def _infer_kind(value: Any) -> ValueKind:
    # bool before int: bool is a subclass of int.
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, int):
        return ValueKind.LONG
    if isinstance(value, float):
        return ValueKind.DOUBLE
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ValueKind.BYTE_STRING
    if isinstance(value, datetime):
        return ValueKind.DATE
    if isinstance(value, Complex32):
        return ValueKind.COMPLEX32
    if isinstance(value, (Complex64, complex)):
        return ValueKind.COMPLEX64
    if isinstance(value, (list, tuple)):
        if not value:
            raise ValueError("Cannot infer the element kind of an empty vector; pass kind explicitly.")
        return ValueKind(f"{_infer_kind(value[0]).value}_vector")
    raise TypeError(f"No literal kind known for value of type {type(value).__name__}.")


def to_vector(values: Sequence[Any], kind: ValueKind) -> VectorData:
    """
    Encode a homogeneous sequence as vector payload of the given element kind.
    """
    element = kind.element_kind
    if element not in _VECTOR_ELEMENT_KINDS:
        raise ValueError(f"{element.value} is not a valid vector element kind.")
    return VectorData(kind=element.value, values=[_scalar_payload(element, v) for v in values])


def to_literal(value: Any, kind: Optional[ValueKind] = None) -> LiteralData:
    """
    Convert a Python value into a `LiteralData`. `None` becomes the null literal.

    Parameters
    ----------
    value : Any
        Value to encode.
    kind : ValueKind, optional
        Explicit literal kind. Inferred from the Python type when omitted
        (int -> long, float -> double, list/tuple -> vector of the first element's kind).
    """
    if value is None:
        return LiteralData()
    kind = kind or _infer_kind(value)
    if kind is ValueKind.NULL:
        return LiteralData()
    if kind.is_vector:
        return LiteralData(kind="vector", vector=to_vector(value, kind))
    if kind not in _SCALAR_KINDS:
        raise ValueError(f"Unsupported literal kind {kind!r}.")
    return LiteralData(kind=kind.value, value=_scalar_payload(kind, value))


def to_insert(
    entity: str,
    row: Mapping[str, Any],
    kinds: Optional[Mapping[str, ValueKind]] = None,
) -> InsertMessage:
    """
    Build an `InsertMessage` for `entity` from a column -> value mapping.
    """
    kinds = kinds or {}
    elements: Iterable[InsertElement] = (
        InsertElement(column=column, value=to_literal(value, kinds.get(column)))
        for column, value in row.items()
    )
    return InsertMessage(entity=entity, elements=list(elements))


__all__ = ["to_literal", "to_vector", "to_insert"]
