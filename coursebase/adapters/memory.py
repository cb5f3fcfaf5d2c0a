"""
In-memory document store.

Used by the test suite and for local runs without a database file. A
transaction works on a deep copy of every collection and swaps it in on
success, so a failure anywhere inside the block leaves no trace. Standalone
reads look at the committed collections directly and never wait for an
open transaction.
"""

import asyncio
import copy
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from coursebase.adapters.clock import SystemClock
from coursebase.ports.clock import ClockPort
from coursebase.ports.store import AnyOf, Clause, Condition, Query

Collections = dict[str, dict[str, dict[str, Any]]]


def _condition_holds(doc: dict[str, Any], cond: Condition) -> bool:
    value = doc.get(cond.field)
    if cond.op == "eq":
        return value == cond.value
    if cond.op == "ne":
        return value != cond.value
    if cond.op == "in":
        return value in cond.value
    if cond.op == "contains":
        return isinstance(value, str) and cond.value.lower() in value.lower()
    if cond.op == "gte":
        return value is not None and value >= cond.value
    if cond.op == "lte":
        return value is not None and value <= cond.value
    raise ValueError(f"Unsupported operator: {cond.op}")


def _clause_holds(doc: dict[str, Any], clause: Clause) -> bool:
    if isinstance(clause, AnyOf):
        return any(_condition_holds(doc, c) for c in clause.conditions)
    return _condition_holds(doc, clause)


def matches(doc: dict[str, Any], query: Query) -> bool:
    return all(_clause_holds(doc, clause) for clause in query)


class InMemorySession:
    def __init__(self, collections: Collections, clock: ClockPort):
        self._collections = collections
        self._clock = clock

    def _timestamp(self) -> str:
        return self._clock.now().isoformat(timespec="microseconds")

    def _docs(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    def _existing(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._collections.get(collection, {})

    def _matching(self, collection: str, query: Query) -> list[dict[str, Any]]:
        return [doc for doc in self._existing(collection).values() if matches(doc, query)]

    async def find_one(self, collection: str, query: Query) -> dict[str, Any] | None:
        for doc in self._existing(collection).values():
            if matches(doc, query):
                return copy.deepcopy(doc)
        return None

    async def find(self, collection: str, query: Query) -> list[dict[str, Any]]:
        return [copy.deepcopy(doc) for doc in self._matching(collection, query)]

    async def paginate(
        self, collection: str, query: Query, *, offset: int, limit: int, order_by: str = "updated_at"
    ) -> tuple[list[dict[str, Any]], int]:
        found = self._matching(collection, query)
        found.sort(key=lambda d: (d.get(order_by) or "", d["id"]), reverse=True)
        page = found[offset : offset + limit]
        return [copy.deepcopy(doc) for doc in page], len(found)

    async def insert(self, collection: str, doc: dict[str, Any]) -> dict[str, Any]:
        docs = self._docs(collection)
        if doc["id"] in docs:
            raise ValueError(f"Duplicate id {doc['id']} in {collection}")
        stamp = self._timestamp()
        stored = copy.deepcopy(doc)
        stored["created_at"] = stamp
        stored["updated_at"] = stamp
        docs[stored["id"]] = stored
        return copy.deepcopy(stored)

    async def update_one(
        self, collection: str, query: Query, changes: dict[str, Any]
    ) -> dict[str, Any] | None:
        for doc in self._docs(collection).values():
            if matches(doc, query):
                doc.update(copy.deepcopy(changes))
                doc["updated_at"] = self._timestamp()
                return copy.deepcopy(doc)
        return None

    async def update_many(self, collection: str, query: Query, changes: dict[str, Any]) -> int:
        found = self._matching(collection, query)
        stamp = self._timestamp()
        for doc in found:
            doc.update(copy.deepcopy(changes))
            doc["updated_at"] = stamp
        return len(found)

    async def push(self, collection: str, doc_id: str, field: str, value: Any) -> None:
        doc = self._docs(collection).get(doc_id)
        if doc is None:
            return
        doc.setdefault(field, []).append(value)
        doc["updated_at"] = self._timestamp()

    async def pull(self, collection: str, doc_id: str, field: str, value: Any) -> None:
        doc = self._docs(collection).get(doc_id)
        if doc is None:
            return
        doc[field] = [v for v in doc.get(field, []) if v != value]
        doc["updated_at"] = self._timestamp()


class InMemoryContentStore:
    def __init__(self, clock: ClockPort | None = None):
        self._clock = clock or SystemClock()
        self._collections: Collections = {}
        self._lock = asyncio.Lock()

    def _session_for(self, collections: Collections) -> InMemorySession:
        return InMemorySession(collections, self._clock)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[InMemorySession]:
        async with self._lock:
            working = copy.deepcopy(self._collections)
            yield self._session_for(working)
            self._collections = working

    # Reads never suspend, and a transaction only swaps its copy in when it
    # commits, so the committed collections can be read without the lock.
    async def find_one(self, collection: str, query: Query) -> dict[str, Any] | None:
        return await self._session_for(self._collections).find_one(collection, query)

    async def find(self, collection: str, query: Query) -> list[dict[str, Any]]:
        return await self._session_for(self._collections).find(collection, query)

    async def paginate(
        self, collection: str, query: Query, *, offset: int, limit: int, order_by: str = "updated_at"
    ) -> tuple[list[dict[str, Any]], int]:
        return await self._session_for(self._collections).paginate(
            collection, query, offset=offset, limit=limit, order_by=order_by
        )

    async def insert(self, collection: str, doc: dict[str, Any]) -> dict[str, Any]:
        async with self.transaction() as session:
            return await session.insert(collection, doc)

    async def update_one(
        self, collection: str, query: Query, changes: dict[str, Any]
    ) -> dict[str, Any] | None:
        async with self.transaction() as session:
            return await session.update_one(collection, query, changes)

    async def update_many(self, collection: str, query: Query, changes: dict[str, Any]) -> int:
        async with self.transaction() as session:
            return await session.update_many(collection, query, changes)

    async def push(self, collection: str, doc_id: str, field: str, value: Any) -> None:
        async with self.transaction() as session:
            await session.push(collection, doc_id, field, value)

    async def pull(self, collection: str, doc_id: str, field: str, value: Any) -> None:
        async with self.transaction() as session:
            await session.pull(collection, doc_id, field, value)

    def count(self, collection: str) -> int:
        return len(self._collections.get(collection, {}))
