"""
Module: connectors.memory_store

Provides an in-memory async document store implementing the DocumentStore
contract. Used by the tests and demos in place of the hosted database.
"""

import asyncio
import copy
import itertools
import logging
import uuid
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .document_store import (
    SERVER_TIMESTAMP,
    Document,
    DocumentNotFoundError,
    FieldFilter,
    Increment,
    SnapshotListener,
    WriteConflictError,
)

logger = logging.getLogger(__name__)


@dataclass
class _PendingUpdate:
    collection: str
    doc_id: str
    data: Document
    preconditions: tuple[FieldFilter, ...] = ()


class InMemoryListener:
    """Live query registration; delivers the latest snapshot on every change."""

    def __init__(
        self,
        store: "InMemoryDocumentStore",
        collection: str,
        on_change: SnapshotListener,
        filters: tuple[FieldFilter, ...],
        order_by: str | None,
        descending: bool,
        limit: int | None,
    ):
        self._store = store
        self.collection = collection
        self.on_change = on_change
        self.filters = filters
        self.order_by = order_by
        self.descending = descending
        self.limit = limit
        self.active = True

    def deliver(self) -> None:
        if not self.active:
            return
        snapshot = self._store._select(
            self.collection, self.filters, self.order_by, self.descending, self.limit
        )
        try:
            self.on_change(snapshot)
        except Exception as e:
            logger.error(
                f"Error in snapshot listener for '{self.collection}': {e}",
                exc_info=True,
            )

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self._store._listeners.remove(self)
            logger.debug(f"Listener on '{self.collection}' cancelled")


class InMemoryWriteBatch:
    """Collects field updates and applies them all-or-nothing on commit."""

    def __init__(self, store: "InMemoryDocumentStore"):
        self._store = store
        self._updates: list[_PendingUpdate] = []
        self._committed = False

    def update(
        self,
        collection: str,
        doc_id: str,
        data: Document,
        preconditions: Sequence[FieldFilter] = (),
    ) -> "InMemoryWriteBatch":
        if self._committed:
            raise RuntimeError("Write batch has already been committed")
        self._updates.append(
            _PendingUpdate(collection, doc_id, dict(data), tuple(preconditions))
        )
        return self

    def __len__(self) -> int:
        return len(self._updates)

    async def commit(self) -> None:
        if self._committed:
            raise RuntimeError("Write batch has already been committed")
        self._committed = True
        await self._store._apply(self._updates)


class InMemoryDocumentStore:
    """
    Dummy hosted document database.

    Documents are kept as dicts keyed by collection and id. Reads return deep
    copies, so callers can never mutate stored state. Batches are applied under
    a lock after every precondition has been checked against the staged state.

    Ordered reads break ties on the order field by creation sequence, so
    documents written within the same clock tick still come back newest first
    when sorted descending.
    """

    def __init__(
        self,
        initial: dict[str, dict[str, Document]] | None = None,
        clock: Callable[[], datetime] = datetime.now,
        latency: float = 0.0,
    ):
        self.clock = clock
        self.latency = latency
        self._collections: dict[str, dict[str, Document]] = {}
        # (collection, doc_id) -> creation sequence
        self._created: dict[tuple[str, str], int] = {}
        self._sequence = itertools.count()
        for collection, docs in (initial or {}).items():
            for doc_id, data in docs.items():
                self._put(collection, doc_id, self._resolve({"id": doc_id}, data))
        self._listeners: list[InMemoryListener] = []
        self._lock = asyncio.Lock()

    # --- Reads --- #

    async def subscribe(
        self,
        collection: str,
        on_change: SnapshotListener,
        filters: Sequence[FieldFilter] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> InMemoryListener:
        """Register a live query; the initial snapshot is delivered before returning."""
        if not callable(on_change):
            raise TypeError("on_change must be callable")
        await asyncio.sleep(self.latency)
        listener = InMemoryListener(
            self, collection, on_change, tuple(filters), order_by, descending, limit
        )
        self._listeners.append(listener)
        listener.deliver()
        return listener

    async def get(self, collection: str, doc_id: str) -> Document | None:
        await asyncio.sleep(self.latency)
        doc = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
        start_after: str | None = None,
    ) -> list[Document]:
        """
        Filtered, ordered read. ``start_after`` is the id of a document from an
        earlier page; only documents ordered strictly after it are returned,
        so writes made between pages cannot shift the results.
        """
        await asyncio.sleep(self.latency)
        return self._select(
            collection, tuple(filters), order_by, descending, limit, offset, start_after
        )

    # --- Writes --- #

    def batch(self) -> InMemoryWriteBatch:
        return InMemoryWriteBatch(self)

    async def add(self, collection: str, data: Document) -> str:
        """Append a new document with a generated id."""
        doc_id = uuid.uuid4().hex
        await asyncio.sleep(self.latency)
        async with self._lock:
            self._put(collection, doc_id, self._resolve({"id": doc_id}, data))
        self._notify([collection])
        return doc_id

    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        """Create or fully replace a document."""
        await asyncio.sleep(self.latency)
        async with self._lock:
            self._put(collection, doc_id, self._resolve({"id": doc_id}, data))
        self._notify([collection])

    async def update(self, collection: str, doc_id: str, data: Document) -> None:
        """Update fields of an existing document."""
        await self._apply([_PendingUpdate(collection, doc_id, dict(data))])

    # --- Internals --- #

    async def _apply(self, updates: list[_PendingUpdate]) -> None:
        if not updates:
            return
        await asyncio.sleep(self.latency)
        async with self._lock:
            staged: dict[tuple[str, str], Document] = {}
            for upd in updates:
                key = (upd.collection, upd.doc_id)
                if key in staged:
                    current = staged[key]
                else:
                    stored = self._collections.get(upd.collection, {}).get(upd.doc_id)
                    if stored is None:
                        raise DocumentNotFoundError(upd.collection, upd.doc_id)
                    current = copy.deepcopy(stored)
                for condition in upd.preconditions:
                    if not condition.matches(current):
                        raise WriteConflictError(upd.collection, upd.doc_id, condition)
                staged[key] = self._resolve(current, upd.data)
            for (collection, doc_id), doc in staged.items():
                self._collections[collection][doc_id] = doc
        logger.debug(f"Applied batch of {len(updates)} update(s)")
        self._notify({upd.collection for upd in updates})

    def _put(self, collection: str, doc_id: str, doc: Document) -> None:
        self._collections.setdefault(collection, {})[doc_id] = doc
        if (collection, doc_id) not in self._created:
            self._created[(collection, doc_id)] = next(self._sequence)

    def _resolve(self, existing: Document, data: Document) -> Document:
        doc = dict(existing)
        now = self.clock()
        for key, value in data.items():
            if key == "id":
                continue
            if value is SERVER_TIMESTAMP:
                doc[key] = now
            elif isinstance(value, Increment):
                doc[key] = (doc.get(key) or 0) + value.amount
            else:
                doc[key] = copy.deepcopy(value)
        return doc

    def _select(
        self,
        collection: str,
        filters: tuple[FieldFilter, ...] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
        start_after: str | None = None,
    ) -> list[Document]:
        docs = [
            copy.deepcopy(doc)
            for doc in self._collections.get(collection, {}).values()
            if all(f.matches(doc) for f in filters)
        ]
        if order_by is not None:
            # Documents without the ordering field are left out, as hosted stores do
            docs = [d for d in docs if d.get(order_by) is not None]

            def sort_key(doc: Document) -> tuple[Any, int]:
                return doc[order_by], self._created[(collection, doc["id"])]

            docs.sort(key=sort_key, reverse=descending)
            if start_after is not None:
                cursor = self._collections.get(collection, {}).get(start_after)
                if cursor is None:
                    raise DocumentNotFoundError(collection, start_after)
                cursor_key = sort_key(cursor)
                if descending:
                    docs = [d for d in docs if sort_key(d) < cursor_key]
                else:
                    docs = [d for d in docs if sort_key(d) > cursor_key]
        elif start_after is not None:
            raise ValueError("start_after requires order_by")
        docs = docs[offset:]
        if limit is not None:
            docs = docs[:limit]
        return docs

    def _notify(self, collections: Iterable[str]) -> None:
        collections = set(collections)
        for listener in list(self._listeners):
            if listener.collection in collections:
                listener.deliver()

    def __repr__(self) -> str:
        sizes: dict[str, Any] = {name: len(docs) for name, docs in self._collections.items()}
        return f"InMemoryDocumentStore({sizes})"
