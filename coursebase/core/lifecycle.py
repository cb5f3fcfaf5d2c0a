"""
Ownership-and-visibility lifecycle engine.

One engine instance serves one content kind. Every read folds the
visibility policy into the store query and every write folds the owner and
state-machine checks into a single conditional update, so "missing",
"not yours" and "already deleted" all surface as the same NotFoundError.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel

from coursebase.core.cascade import cascade_delete
from coursebase.core.pagination import Page, PageParams, parse_page_params
from coursebase.domain.attributes import validate_attributes
from coursebase.domain.entities import ContentEntity, ContentStatus, User, Visibility
from coursebase.domain.errors import ForbiddenError, InvalidInputError, NotFoundError
from coursebase.domain.kinds import EntityKind, get_kind
from coursebase.domain.policy import (
    FORBIDDEN_MESSAGE,
    batch_filter,
    mutation_filter,
    owner_listing,
    public_listing,
    readable_by,
)
from coursebase.domain.slugs import make_slug
from coursebase.domain.state import allowed_sources
from coursebase.ports.store import ContentStorePort, Query, eq, ne
from coursebase.rules.models import Rules

logger = logging.getLogger(__name__)

Attributes = Mapping[str, Any] | BaseModel | None


def parse_id(value: UUID | str, label: str) -> UUID:
    """Parse an entity identifier, raising InvalidInputError for malformed ones."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise InvalidInputError(f"The specified {label} identifier is invalid.") from None


class LifecycleEngine:
    def __init__(self, kind: EntityKind, store: ContentStorePort, rules: Rules | None = None):
        self.kind = kind
        self.store = store
        self.rules = rules or Rules()

    # --- helpers ---

    def _load(self, doc: dict[str, Any]) -> ContentEntity:
        return self.kind.model.model_validate(doc)

    def _id(self, value: UUID | str) -> UUID:
        return parse_id(value, self.kind.label)

    def _require_actor(self, actor: User | None) -> User:
        if actor is None:
            raise ForbiddenError(FORBIDDEN_MESSAGE)
        return actor

    def _not_found(self) -> NotFoundError:
        return NotFoundError(self.kind.not_found_message())

    # --- operations ---

    async def create(self, actor: User, attributes: Attributes) -> ContentEntity:
        actor = self._require_actor(actor)
        values = validate_attributes(self.kind.create_schema, attributes)
        data = values.model_dump()

        entity_id = uuid4()
        entity = self.kind.model(
            **data,
            id=entity_id,
            slug=make_slug(data.get(self.kind.title_field), entity_id),
            status="private",
            **{self.kind.owner_field: actor.id},
        )
        doc = entity.model_dump(mode="json")

        link = self.kind.parent
        if link is None:
            stored = await self.store.insert(self.kind.collection, doc)
        else:
            parent_kind = get_kind(link.kind)
            parent_id = data[link.foreign_key]
            async with self.store.transaction() as session:
                parent = await session.find_one(
                    parent_kind.collection,
                    mutation_filter(parent_kind.owner_field, actor.id, parent_id),
                )
                if parent is None:
                    raise NotFoundError(parent_kind.not_found_message())
                stored = await session.insert(self.kind.collection, doc)
                await session.push(parent_kind.collection, parent["id"], link.list_field, stored["id"])

        logger.info("Created %s %s for %s", self.kind.name, stored["id"], actor.id)
        return self._load(stored)

    async def list(
        self,
        actor: User | None,
        page_params: Mapping[str, Any] | PageParams | None = None,
        visibility: Visibility = "owner",
        parent_id: UUID | str | None = None,
    ) -> Page[ContentEntity]:
        params = parse_page_params(page_params, self.rules.pagination)

        query: list[Any] = []
        if visibility == "public":
            query.extend(public_listing())
        else:
            query.extend(owner_listing(self.kind.owner_field, self._require_actor(actor).id))

        if parent_id is not None:
            link = self.kind.parent
            if link is None:
                raise InvalidInputError(f"A {self.kind.label} cannot be filtered by parent.")
            query.append(eq(link.foreign_key, parse_id(parent_id, get_kind(link.kind).label)))

        docs, total = await self.store.paginate(
            self.kind.collection, query, offset=params.offset, limit=params.limit
        )
        return Page.build([self._load(d) for d in docs], total, params)

    async def _get(self, actor: User | None, visibility: Visibility, query: Query) -> ContentEntity:
        actor_id = actor.id if actor is not None else None
        doc = await self.store.find_one(
            self.kind.collection,
            [*query, *readable_by(self.kind.owner_field, actor_id, visibility)],
        )
        if doc is None:
            raise self._not_found()
        return self._load(doc)

    async def get_by_id(
        self, actor: User | None, entity_id: UUID | str, visibility: Visibility = "owner"
    ) -> ContentEntity:
        return await self._get(actor, visibility, [eq("id", self._id(entity_id))])

    async def get_by_slug(
        self, actor: User | None, slug: str, visibility: Visibility = "owner"
    ) -> ContentEntity:
        if not isinstance(slug, str) or not slug.strip():
            raise InvalidInputError(f"The specified {self.kind.label} slug is invalid.")
        return await self._get(actor, visibility, [eq("slug", slug.strip())])

    async def update(self, actor: User, entity_id: UUID | str, attributes: Attributes) -> ContentEntity:
        actor = self._require_actor(actor)
        target = self._id(entity_id)
        values = validate_attributes(self.kind.update_schema, attributes)
        changes = values.model_dump(mode="json", exclude_unset=True)

        async with self.store.transaction() as session:
            doc = await session.update_one(
                self.kind.collection,
                mutation_filter(self.kind.owner_field, actor.id, target),
                changes,
            )
            if doc is None:
                raise self._not_found()
            for ref in self.kind.references:
                if changes.get(ref.foreign_key) is None:
                    continue
                live = [eq("id", changes[ref.foreign_key]), ne("status", "deleted")]
                if await session.find_one(ref.collection, live) is None:
                    raise NotFoundError(f"Cannot find a {ref.label} with the specified identifier.")
        logger.info("Updated %s %s (%s)", self.kind.name, target, ", ".join(sorted(changes)) or "no fields")
        return self._load(doc)

    async def _transition(self, actor: User, entity_id: UUID | str, status: ContentStatus) -> ContentEntity:
        actor = self._require_actor(actor)
        target = self._id(entity_id)
        doc = await self.store.update_one(
            self.kind.collection,
            mutation_filter(self.kind.owner_field, actor.id, target, allowed_sources(status)),
            {"status": status},
        )
        if doc is None:
            raise self._not_found()
        logger.info("Set %s %s to %s", self.kind.name, target, status)
        return self._load(doc)

    async def publish(self, actor: User, entity_id: UUID | str) -> ContentEntity:
        return await self._transition(actor, entity_id, "public")

    async def unpublish(self, actor: User, entity_id: UUID | str) -> ContentEntity:
        return await self._transition(actor, entity_id, "private")

    async def remove(self, actor: User, entity_id: UUID | str) -> bool:
        """
        Soft-delete the entity and, in the same transaction, its live
        descendants. Only the entity itself is unlinked from its parent.
        """
        actor = self._require_actor(actor)
        target = self._id(entity_id)
        link = self.kind.parent

        async with self.store.transaction() as session:
            doc = await session.update_one(
                self.kind.collection,
                mutation_filter(self.kind.owner_field, actor.id, target, allowed_sources("deleted")),
                {"status": "deleted"},
            )
            if doc is None:
                raise self._not_found()
            swept = await cascade_delete(session, self.kind, [doc["id"]])
            if link is not None:
                parent_kind = get_kind(link.kind)
                await session.pull(parent_kind.collection, doc[link.foreign_key], link.list_field, doc["id"])

        logger.info("Deleted %s %s (%d descendants)", self.kind.name, target, swept)
        return True

    async def list_by_ids(self, actor: User | None, ids: Iterable[UUID | str]) -> list[ContentEntity]:
        """
        Fetch visible entities in the order requested. Missing, deleted and
        invisible ids are dropped; repeated ids keep their first position.
        """
        wanted = list(dict.fromkeys(str(self._id(i)) for i in ids))
        if not wanted:
            return []

        actor_id = actor.id if actor is not None else None
        docs = await self.store.find(
            self.kind.collection, batch_filter(self.kind.owner_field, actor_id, wanted)
        )
        by_id = {doc["id"]: doc for doc in docs}
        return [self._load(by_id[i]) for i in wanted if i in by_id]
