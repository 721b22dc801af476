from __future__ import annotations

from datetime import datetime, timezone

import pytest

from cottontail_client.domain.literals import to_insert, to_literal, to_vector
from cottontail_client.domain.types import Complex64, ValueKind

EPOCH_MILLIS = 1_700_000_000_123


def test_python_types_map_to_default_kinds():
    assert to_literal(True).kind == "boolean"
    assert to_literal(5).kind == "long"
    assert to_literal(5.0).kind == "double"
    assert to_literal("s").kind == "string"
    assert to_literal(b"b").kind == "bytes"
    assert to_literal(complex(1, 2)).value == [1.0, 2.0]
    assert to_literal(None).kind is None


def test_explicit_kind_overrides_inference():
    literal = to_literal(5, ValueKind.INT)
    assert literal.kind == "int"
    assert literal.value == 5


def test_date_is_encoded_as_epoch_millis():
    when = datetime.fromtimestamp(EPOCH_MILLIS / 1000, tz=timezone.utc).replace(microsecond=123000)
    assert to_literal(when).value == EPOCH_MILLIS


def test_sequence_becomes_vector_literal():
    literal = to_literal([1.0, 2.0])
    assert literal.kind == "vector"
    assert literal.vector.kind == "double"
    assert literal.vector.values == [1.0, 2.0]


def test_complex_vector_payload():
    vector = to_vector([Complex64(1.0, 2.0)], ValueKind.COMPLEX64_VECTOR)
    assert vector.kind == "complex64"
    assert vector.values == [[1.0, 2.0]]


def test_empty_sequence_needs_explicit_kind():
    with pytest.raises(ValueError):
        to_literal([])
    assert to_literal([], ValueKind.INT_VECTOR).vector.values == []


def test_unknown_python_type_raises():
    with pytest.raises(TypeError):
        to_literal(object())


def test_to_insert_builds_one_element_per_column():
    message = to_insert("warren.t", {"id": 1, "name": "a"}, kinds={"id": ValueKind.INT})
    assert message.entity == "warren.t"
    assert [e.column for e in message.elements] == ["id", "name"]
    assert message.elements[0].value.kind == "int"
    assert message.elements[1].value.kind == "string"
