"""
Module: connectors.document_store

Defines the contract the inventory core needs from the hosted document
database: live collection listeners, single-document reads, guarded atomic
write batches, appends with server timestamps and simple field queries.
"""

import operator
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

Document = dict[str, Any]
SnapshotListener = Callable[[list[Document]], None]


class _ServerTimestamp:
    """Sentinel replaced by the store's clock when a write is applied."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class Increment:
    """Field transform adding ``amount`` to the stored numeric value."""

    amount: int | float


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


@dataclass(frozen=True)
class FieldFilter:
    """
    Equality/range predicate on a single document field.

    Used both for queries and as a write precondition. A missing field only
    satisfies ``!=`` (and ``==`` against None); range comparisons on a
    missing field never match.
    """

    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in _OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")

    def matches(self, doc: Document) -> bool:
        current = doc.get(self.field)
        if current is None and self.op not in ("==", "!="):
            return False
        try:
            return _OPERATORS[self.op](current, self.value)
        except TypeError:
            return False


class DocumentStoreError(Exception):
    """Base error raised by document store connectors."""


class DocumentNotFoundError(DocumentStoreError):
    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"No document {collection}/{doc_id}")


class WriteConflictError(DocumentStoreError):
    """A batch precondition did not hold when the batch was applied."""

    def __init__(self, collection: str, doc_id: str, failed: FieldFilter):
        self.collection = collection
        self.doc_id = doc_id
        self.failed = failed
        super().__init__(
            f"Precondition {failed.field} {failed.op} {failed.value!r} "
            f"failed for {collection}/{doc_id}"
        )


class ListenerRegistration(Protocol):
    def cancel(self) -> None: ...


class WriteBatch(Protocol):
    def update(
        self,
        collection: str,
        doc_id: str,
        data: Document,
        preconditions: Sequence[FieldFilter] = (),
    ) -> "WriteBatch": ...

    async def commit(self) -> None: ...


class DocumentStore(Protocol):
    """Async interface to the persisted store (collections of dict documents)."""

    async def subscribe(
        self,
        collection: str,
        on_change: SnapshotListener,
        filters: Sequence[FieldFilter] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> ListenerRegistration: ...

    async def get(self, collection: str, doc_id: str) -> Document | None: ...

    def batch(self) -> WriteBatch: ...

    async def add(self, collection: str, data: Document) -> str: ...

    async def set(self, collection: str, doc_id: str, data: Document) -> None: ...

    async def update(self, collection: str, doc_id: str, data: Document) -> None: ...

    async def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
        start_after: str | None = None,
    ) -> list[Document]: ...
