"""
Ownership and visibility policy.

Every rule is expressed as a store query rather than a post-fetch check, so
reading or mutating something the actor may not see looks exactly like the
thing not existing. Callers turn an empty result into NotFound.
"""

from collections.abc import Iterable, Sequence
from uuid import UUID

from coursebase.domain.entities import ContentStatus, User, Visibility
from coursebase.domain.errors import ForbiddenError
from coursebase.ports.store import Clause, any_of, eq, is_in, ne

FORBIDDEN_MESSAGE = "The requested resource is forbidden."


def public_listing() -> list[Clause]:
    return [eq("status", "public")]


def owner_listing(owner_field: str, actor_id: UUID) -> list[Clause]:
    return [eq(owner_field, actor_id), ne("status", "deleted")]


def readable_by(owner_field: str, actor_id: UUID | None, visibility: Visibility) -> list[Clause]:
    """
    Visibility clauses for a single-item read.

    The public audience sees only published items. The owner audience also
    sees the actor's own private items; deleted items are hidden from both.
    """
    if visibility == "public" or actor_id is None:
        return [eq("status", "public")]
    return [
        ne("status", "deleted"),
        any_of(eq("status", "public"), eq(owner_field, actor_id)),
    ]


def mutation_filter(
    owner_field: str,
    actor_id: UUID,
    target_id: UUID,
    sources: Sequence[ContentStatus] | None = None,
) -> list[Clause]:
    """
    Filter for an owner-only write.

    With `sources` the status must be one of them (the state machine's
    allowed origins); without, any non-deleted status qualifies.
    """
    clauses: list[Clause] = [eq("id", target_id), eq(owner_field, actor_id)]
    if sources is None:
        clauses.append(ne("status", "deleted"))
    else:
        clauses.append(is_in("status", sources))
    return clauses


def batch_filter(owner_field: str, actor_id: UUID | None, ids: Iterable[UUID]) -> list[Clause]:
    return [is_in("id", ids), *readable_by(owner_field, actor_id, "owner")]


def has_role(user: User, allowed_roles: Iterable[str]) -> bool:
    return bool(set(user.roles) & set(allowed_roles))


def require_role(user: User | None, allowed_roles: Iterable[str]) -> User:
    """Pass the user through when they hold any allowed role, else raise Forbidden."""
    if user is None or not has_role(user, allowed_roles):
        raise ForbiddenError(FORBIDDEN_MESSAGE)
    return user
