"""
Common interfaces and result-metadata handling for tuple iterators.

Concrete iterators (synchronous pull, asynchronous pull) share the metadata
captured from the first response message and the completion-callback
contract defined here.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, List, Optional, Protocol, runtime_checkable

from cottontail_client.domain.messages import QueryResponseMessage, ResponseMetadata
from cottontail_client.domain.types import Type
from cottontail_client.iterators.column_index import ColumnIndex
from cottontail_client.iterators.tuple import Tuple

# Invoked exactly once per iterator with (iterator, aborted).
CompletionCallback = Callable[[Any, bool], Any]


@runtime_checkable
class TupleIterator(Protocol):
    """
    Pull-style iterator over the tuples of one (possibly multi-message) result.

    Attributes
    ----------
    completed : bool
        True once the underlying message source is exhausted.
    number_of_columns : int
        Number of columns of every tuple returned by this iterator.
    columns : list[str]
        Fully-qualified column names in order of occurrence.
    """

    completed: bool
    number_of_columns: int
    columns: List[str]

    def has_next(self) -> bool:
        ...

    def next(self) -> Tuple:
        ...

    def close(self) -> None:
        ...

    def __iter__(self) -> Iterator[Tuple]:
        ...


class ResultMetadataMixin:
    """
    Read-only view on the column index and response metadata of a result.

    Subclasses assign `_index` and `_metadata` when the first message arrives.
    """

    _index: ColumnIndex
    _metadata: Optional[ResponseMetadata]

    def _capture(self, first: Optional[QueryResponseMessage]) -> None:
        if first is None:
            self._index.build(())
            self._metadata = None
        else:
            self._index.build(first.columns)
            self._metadata = first.metadata

    @property
    def column_index(self) -> ColumnIndex:
        return self._index

    @property
    def metadata(self) -> Optional[ResponseMetadata]:
        return self._metadata

    @property
    def transaction_id(self) -> Optional[int]:
        return self._metadata.transaction_id if self._metadata else None

    @property
    def query_id(self) -> Optional[str]:
        return self._metadata.query_id if self._metadata else None

    @property
    def columns(self) -> List[str]:
        """Fully-qualified column names in order of occurrence."""
        return self._index.qualified_names

    @property
    def simple(self) -> List[str]:
        """Simple column names; may be incomplete since simple names can collide."""
        return self._index.simple_names

    @property
    def number_of_columns(self) -> int:
        return len(self._index)

    def type(self, column: str | int) -> Type:
        position = self._index.resolve(column) if isinstance(column, str) else column
        return self._index.type_for_index(position)


__all__ = ["CompletionCallback", "ResultMetadataMixin", "TupleIterator"]
