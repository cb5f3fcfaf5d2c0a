"""
Document store port.

Documents are plain JSON-compatible dicts keyed by `id` inside a named
collection. Queries are a sequence of clauses that must all hold; a clause
is either a single `Condition` or an `AnyOf` disjunction. This is the whole
query language the services need: equality, inequality, membership,
case-insensitive substring and inclusive range bounds.

Stores own the `created_at` / `updated_at` timestamps and stamp them on
every write. Paginated reads are ordered by `updated_at` descending unless
another field is named.
"""

from collections.abc import Iterable, Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Any, Literal, Protocol
from uuid import UUID

Operator = Literal["eq", "ne", "in", "contains", "gte", "lte"]


@dataclass(frozen=True)
class Condition:
    field: str
    op: Operator
    value: Any


@dataclass(frozen=True)
class AnyOf:
    conditions: tuple[Condition, ...]


Clause = Condition | AnyOf
Query = Sequence[Clause]


def normalize(value: Any) -> Any:
    """Bring a filter value into the shape stored documents use."""
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, list | tuple | set | frozenset):
        return tuple(normalize(v) for v in value)
    return value


def eq(field: str, value: Any) -> Condition:
    return Condition(field, "eq", normalize(value))


def ne(field: str, value: Any) -> Condition:
    return Condition(field, "ne", normalize(value))


def is_in(field: str, values: Iterable[Any]) -> Condition:
    return Condition(field, "in", normalize(tuple(values)))


def contains(field: str, text: str) -> Condition:
    """Case-insensitive substring match on a string field."""
    return Condition(field, "contains", text)


def gte(field: str, value: Any) -> Condition:
    return Condition(field, "gte", normalize(value))


def lte(field: str, value: Any) -> Condition:
    return Condition(field, "lte", normalize(value))


def any_of(*conditions: Condition) -> AnyOf:
    return AnyOf(tuple(conditions))


class StoreSessionPort(Protocol):
    async def find_one(self, collection: str, query: Query) -> dict[str, Any] | None:
        ...

    async def find(self, collection: str, query: Query) -> list[dict[str, Any]]:
        ...

    async def paginate(
        self, collection: str, query: Query, *, offset: int, limit: int, order_by: str = "updated_at"
    ) -> tuple[list[dict[str, Any]], int]:
        """Return one page of matches (largest `order_by` first) and the total match count."""
        ...

    async def insert(self, collection: str, doc: dict[str, Any]) -> dict[str, Any]:
        ...

    async def update_one(
        self, collection: str, query: Query, changes: dict[str, Any]
    ) -> dict[str, Any] | None:
        """Apply `changes` to the first match and return it, or None when nothing matched."""
        ...

    async def update_many(self, collection: str, query: Query, changes: dict[str, Any]) -> int:
        ...

    async def push(self, collection: str, doc_id: str, field: str, value: Any) -> None:
        """Append `value` to the list `field` of one document."""
        ...

    async def pull(self, collection: str, doc_id: str, field: str, value: Any) -> None:
        """Remove every occurrence of `value` from the list `field` of one document."""
        ...


class ContentStorePort(StoreSessionPort, Protocol):
    """
    A session that can also open transactions.

    Methods called on the store directly commit on their own. Inside
    `async with store.transaction() as session:` every call on `session`
    commits together when the block exits cleanly, and none of them do
    if it raises.
    """

    def transaction(self) -> AbstractAsyncContextManager[StoreSessionPort]:
        ...
