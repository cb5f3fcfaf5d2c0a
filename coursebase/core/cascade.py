import logging

from coursebase.domain.kinds import EntityKind, get_kind
from coursebase.ports.store import StoreSessionPort, is_in, ne

logger = logging.getLogger(__name__)


async def cascade_delete(session: StoreSessionPort, kind: EntityKind, parent_ids: list[str]) -> int:
    """
    Soft-delete every live descendant of `parent_ids`, walking the declared
    cascade rules top-down. Returns how many documents were marked.

    Descendants keep their place in their own parent's child list: only a
    directly deleted entity is unlinked.
    """
    if not parent_ids:
        return 0

    marked = 0
    for rule in kind.cascade:
        child_kind = get_kind(rule.child)
        children = await session.find(
            child_kind.collection,
            [is_in(rule.foreign_key, parent_ids), ne("status", "deleted")],
        )
        if not children:
            continue

        child_ids = [child["id"] for child in children]
        marked += await session.update_many(
            child_kind.collection, [is_in("id", child_ids)], {"status": "deleted"}
        )
        logger.debug("Cascaded delete to %d %s(s)", len(child_ids), child_kind.name)
        marked += await cascade_delete(session, child_kind, child_ids)
    return marked
