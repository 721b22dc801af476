"""
Name-to-position mapping for the columns of one result set.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from cottontail_client.domain.messages import ColumnDescriptor
from cottontail_client.domain.types import Type
from cottontail_client.errors import UnknownColumn


class ColumnIndex:
    """
    Resolves fully-qualified (``schema.entity.column``) and simple (``column``)
    names to zero-based positions.

    Built once from the first response message of a result and read-only
    afterwards, so every `Tuple` of that result can share the same instance.
    If simple names collide, the first occurrence wins.
    """

    __slots__ = ("_columns", "_qualified", "_simple", "_built")

    def __init__(self) -> None:
        self._columns: List[ColumnDescriptor] = []
        self._qualified: Dict[str, int] = {}
        self._simple: Dict[str, int] = {}
        self._built = False

    @classmethod
    def of(cls, columns: Iterable[ColumnDescriptor]) -> "ColumnIndex":
        index = cls()
        index.build(columns)
        return index

    def build(self, columns: Iterable[ColumnDescriptor]) -> None:
        if self._built:
            raise RuntimeError("ColumnIndex has already been built.")
        self._built = True
        for i, column in enumerate(columns):
            self._columns.append(column)
            self._qualified[column.qualified_name] = i
            self._simple.setdefault(column.simple_name, i)

    @property
    def built(self) -> bool:
        return self._built

    @property
    def qualified_names(self) -> List[str]:
        return list(self._qualified)

    @property
    def simple_names(self) -> List[str]:
        """Simple names in order of occurrence; incomplete if names collide."""
        return list(self._simple)

    @property
    def columns(self) -> List[ColumnDescriptor]:
        return list(self._columns)

    def get(self, name: str) -> Optional[int]:
        index = self._qualified.get(name)
        if index is None:
            index = self._simple.get(name)
        return index

    def resolve(self, name: str) -> int:
        index = self.get(name)
        if index is None:
            raise UnknownColumn(name)
        return index

    def name_for_index(self, index: int) -> str:
        return self._columns[index].qualified_name

    def simple_name_for_index(self, index: int) -> str:
        return self._columns[index].simple_name

    def type_for_index(self, index: int) -> Type:
        return self._columns[index].type

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __len__(self) -> int:
        return len(self._columns)

    def __repr__(self) -> str:
        return f"ColumnIndex({self.qualified_names!r})"


__all__ = ["ColumnIndex"]
