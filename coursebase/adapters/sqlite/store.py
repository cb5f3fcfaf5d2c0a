"""
SQLite document store.

Every collection lives in the single `documents` table as JSON bodies and
filters compile to `json_extract` expressions.

Writes share one connection. Each step of a transaction, and its COMMIT or
ROLLBACK, runs on one dedicated worker thread, so a step still in flight
when the caller is cancelled finishes inside the transaction before the
rollback. Standalone reads use a second connection on its own thread and
only ever see committed data.
"""

import asyncio
import json
import logging
import re
import sqlite3
from collections.abc import AsyncIterator, Callable
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from coursebase.adapters.clock import SystemClock
from coursebase.domain.errors import InternalError
from coursebase.ports.clock import ClockPort
from coursebase.ports.store import AnyOf, Clause, Condition, Query

logger = logging.getLogger(__name__)

_FIELD_RE = re.compile(r"^[a-z_][a-z0-9_]*$")

R = TypeVar("R")


def _path(field: str) -> str:
    if not _FIELD_RE.match(field):
        raise ValueError(f"Invalid field name: {field!r}")
    return f"json_extract(body, '$.{field}')"


def _compile_condition(cond: Condition) -> tuple[str, list[Any]]:
    column = _path(cond.field)
    if cond.op == "eq":
        if cond.value is None:
            return f"{column} IS NULL", []
        return f"{column} = ?", [cond.value]
    if cond.op == "ne":
        if cond.value is None:
            return f"{column} IS NOT NULL", []
        return f"({column} IS NULL OR {column} != ?)", [cond.value]
    if cond.op == "in":
        if not cond.value:
            return "0", []
        marks = ", ".join("?" for _ in cond.value)
        return f"{column} IN ({marks})", list(cond.value)
    if cond.op == "contains":
        # instr() needs no escaping of % and _ the way LIKE would.
        return f"instr(lower({column}), lower(?)) > 0", [cond.value]
    if cond.op == "gte":
        return f"{column} >= ?", [cond.value]
    if cond.op == "lte":
        return f"{column} <= ?", [cond.value]
    raise ValueError(f"Unsupported operator: {cond.op}")


def _compile_clause(clause: Clause) -> tuple[str, list[Any]]:
    if isinstance(clause, AnyOf):
        if not clause.conditions:
            return "0", []
        parts, params = [], []
        for cond in clause.conditions:
            sql, args = _compile_condition(cond)
            parts.append(sql)
            params.extend(args)
        return "(" + " OR ".join(parts) + ")", params
    return _compile_condition(clause)


def compile_query(collection: str, query: Query) -> tuple[str, list[Any]]:
    """Build the WHERE clause (without the keyword) for a collection query."""
    parts = ["collection = ?"]
    params: list[Any] = [collection]
    for clause in query:
        sql, args = _compile_clause(clause)
        parts.append(sql)
        params.extend(args)
    return " AND ".join(parts), params


def _order_column(order_by: str) -> str:
    return "updated_at" if order_by == "updated_at" else _path(order_by)


class SQLiteSession:
    """Runs store operations on a connection, each on the given single-thread executor."""

    def __init__(self, conn: sqlite3.Connection, clock: ClockPort, executor: ThreadPoolExecutor):
        self._conn = conn
        self._clock = clock
        self._executor = executor

    async def _call(self, fn: Callable[..., R], *args: Any) -> R:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, fn, *args)
        except sqlite3.Error as e:
            raise InternalError(f"SQLite error: {e}") from e

    def _timestamp(self) -> str:
        return self._clock.now().isoformat(timespec="microseconds")

    def _select(
        self, collection: str, query: Query, suffix: str = "", extra: tuple[Any, ...] = ()
    ) -> list[dict[str, Any]]:
        where, params = compile_query(collection, query)
        rows = self._conn.execute(
            f"SELECT body FROM documents WHERE {where} {suffix}", [*params, *extra]
        ).fetchall()
        return [json.loads(row[0]) for row in rows]

    def _write(self, collection: str, doc: dict[str, Any]) -> None:
        self._conn.execute(
            "UPDATE documents SET body = ?, updated_at = ? WHERE collection = ? AND id = ?",
            (json.dumps(doc), doc["updated_at"], collection, doc["id"]),
        )

    # --- sync implementations, run on the worker thread ---

    def _find_one(self, collection: str, query: Query) -> dict[str, Any] | None:
        found = self._select(collection, query, "LIMIT 1")
        return found[0] if found else None

    def _paginate(
        self, collection: str, query: Query, offset: int, limit: int, order_by: str
    ) -> tuple[list[dict[str, Any]], int]:
        where, params = compile_query(collection, query)
        total = self._conn.execute(
            f"SELECT COUNT(*) FROM documents WHERE {where}", params
        ).fetchone()[0]
        column = _order_column(order_by)
        page = self._select(
            collection, query, f"ORDER BY {column} DESC, id DESC LIMIT ? OFFSET ?", (limit, offset)
        )
        return page, total

    def _insert(self, collection: str, doc: dict[str, Any]) -> dict[str, Any]:
        stamp = self._timestamp()
        stored = {**doc, "created_at": stamp, "updated_at": stamp}
        self._conn.execute(
            "INSERT INTO documents (collection, id, body, updated_at) VALUES (?, ?, ?, ?)",
            (collection, stored["id"], json.dumps(stored), stamp),
        )
        return stored

    def _update_one(
        self, collection: str, query: Query, changes: dict[str, Any]
    ) -> dict[str, Any] | None:
        doc = self._find_one(collection, query)
        if doc is None:
            return None
        doc.update(changes)
        doc["updated_at"] = self._timestamp()
        self._write(collection, doc)
        return doc

    def _update_many(self, collection: str, query: Query, changes: dict[str, Any]) -> int:
        stamp = self._timestamp()
        found = self._select(collection, query)
        for doc in found:
            doc.update(changes)
            doc["updated_at"] = stamp
            self._write(collection, doc)
        return len(found)

    def _modify_list(self, collection: str, doc_id: str, field: str, value: Any, add: bool) -> None:
        row = self._conn.execute(
            "SELECT body FROM documents WHERE collection = ? AND id = ?", (collection, doc_id)
        ).fetchone()
        if row is None:
            return
        doc = json.loads(row[0])
        items = list(doc.get(field) or [])
        doc[field] = [*items, value] if add else [v for v in items if v != value]
        doc["updated_at"] = self._timestamp()
        self._write(collection, doc)

    # --- async surface ---

    async def find_one(self, collection: str, query: Query) -> dict[str, Any] | None:
        return await self._call(self._find_one, collection, query)

    async def find(self, collection: str, query: Query) -> list[dict[str, Any]]:
        return await self._call(self._select, collection, query, "ORDER BY rowid")

    async def paginate(
        self, collection: str, query: Query, *, offset: int, limit: int, order_by: str = "updated_at"
    ) -> tuple[list[dict[str, Any]], int]:
        return await self._call(self._paginate, collection, query, offset, limit, order_by)

    async def insert(self, collection: str, doc: dict[str, Any]) -> dict[str, Any]:
        return await self._call(self._insert, collection, doc)

    async def update_one(
        self, collection: str, query: Query, changes: dict[str, Any]
    ) -> dict[str, Any] | None:
        return await self._call(self._update_one, collection, query, changes)

    async def update_many(self, collection: str, query: Query, changes: dict[str, Any]) -> int:
        return await self._call(self._update_many, collection, query, changes)

    async def push(self, collection: str, doc_id: str, field: str, value: Any) -> None:
        await self._call(self._modify_list, collection, doc_id, field, value, True)

    async def pull(self, collection: str, doc_id: str, field: str, value: Any) -> None:
        await self._call(self._modify_list, collection, doc_id, field, value, False)


def _connect(db_path: str) -> sqlite3.Connection:
    # Transactions are explicit (BEGIN IMMEDIATE / COMMIT) on the writer.
    return sqlite3.connect(db_path, check_same_thread=False, isolation_level=None)


class SQLiteContentStore:
    def __init__(self, db_path: str, clock: ClockPort | None = None):
        self.db_path = db_path
        self._clock = clock or SystemClock()
        self._conn = _connect(db_path)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._reader = _connect(db_path)
        self._writer_thread = ThreadPoolExecutor(max_workers=1, thread_name_prefix="coursebase-sqlite-write")
        self._reader_thread = ThreadPoolExecutor(max_workers=1, thread_name_prefix="coursebase-sqlite-read")
        self._lock = asyncio.Lock()

    def close(self) -> None:
        self._writer_thread.shutdown(wait=True)
        self._reader_thread.shutdown(wait=True)
        self._conn.close()
        self._reader.close()

    def _begin(self) -> None:
        self._conn.execute("BEGIN IMMEDIATE")

    def _commit(self) -> None:
        self._conn.execute("COMMIT")

    def _rollback(self) -> None:
        if self._conn.in_transaction:
            self._conn.execute("ROLLBACK")

    async def _on_writer(self, fn: Callable[[], None]) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(self._writer_thread, fn)
        except sqlite3.Error as e:
            raise InternalError(f"SQLite error: {e}") from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SQLiteSession]:
        async with self._lock:
            try:
                await self._on_writer(self._begin)
                yield SQLiteSession(self._conn, self._clock, self._writer_thread)
                await asyncio.shield(self._on_writer(self._commit))
            except BaseException:
                # Queued behind any step still running on the writer thread.
                await asyncio.shield(self._on_writer(self._rollback))
                raise

    def _read_session(self) -> SQLiteSession:
        return SQLiteSession(self._reader, self._clock, self._reader_thread)

    async def find_one(self, collection: str, query: Query) -> dict[str, Any] | None:
        return await self._read_session().find_one(collection, query)

    async def find(self, collection: str, query: Query) -> list[dict[str, Any]]:
        return await self._read_session().find(collection, query)

    async def paginate(
        self, collection: str, query: Query, *, offset: int, limit: int, order_by: str = "updated_at"
    ) -> tuple[list[dict[str, Any]], int]:
        return await self._read_session().paginate(
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
