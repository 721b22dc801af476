from __future__ import annotations

import pytest

from cottontail_client.domain.messages import ColumnDescriptor
from cottontail_client.domain.types import Type
from cottontail_client.errors import UnknownColumn
from cottontail_client.iterators.column_index import ColumnIndex


def _columns() -> list[ColumnDescriptor]:
    return [
        ColumnDescriptor(schema="warren", entity="a", name="id", type=Type.LONG),
        ColumnDescriptor(schema="warren", entity="a", name="name", type=Type.STRING),
        ColumnDescriptor(schema="warren", entity="b", name="id", type=Type.INTEGER),
    ]


def test_qualified_and_simple_name_resolve_to_same_index():
    index = ColumnIndex.of(_columns())
    assert index.resolve("warren.a.name") == 1
    assert index.resolve("name") == 1


def test_colliding_simple_name_resolves_to_first_occurrence():
    index = ColumnIndex.of(_columns())
    assert index.resolve("id") == 0
    assert index.resolve("warren.b.id") == 2


def test_qualified_names_are_complete_and_simple_names_deduplicated():
    index = ColumnIndex.of(_columns())
    assert index.qualified_names == ["warren.a.id", "warren.a.name", "warren.b.id"]
    assert index.simple_names == ["id", "name"]
    assert len(index) == 3


def test_unknown_column_raises():
    index = ColumnIndex.of(_columns())
    with pytest.raises(UnknownColumn) as excinfo:
        index.resolve("nonexistent")
    assert "nonexistent" in str(excinfo.value)
    assert "nonexistent" not in index


def test_metadata_lookups_by_index():
    index = ColumnIndex.of(_columns())
    assert index.name_for_index(2) == "warren.b.id"
    assert index.simple_name_for_index(2) == "id"
    assert index.type_for_index(1) is Type.STRING


def test_empty_index_reports_zero_columns():
    index = ColumnIndex.of([])
    assert len(index) == 0
    assert index.built


def test_build_is_one_time():
    index = ColumnIndex.of(_columns())
    with pytest.raises(RuntimeError):
        index.build(_columns())
