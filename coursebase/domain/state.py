from coursebase.domain.entities import ContentStatus

# target -> statuses an entity may be in for the transition to apply.
# Re-applying a live status is allowed so publish/unpublish stay idempotent.
TRANSITIONS: dict[ContentStatus, tuple[ContentStatus, ...]] = {
    "private": ("private", "public"),
    "public": ("private", "public"),
    "deleted": ("private", "public"),
}


def can_transition(current: ContentStatus, new: ContentStatus) -> bool:
    """
    Determine if a state transition is allowed.

    `deleted` is terminal: nothing leaves it, and deleting twice is not a
    transition either.
    """
    return current in TRANSITIONS.get(new, ())


def allowed_sources(new: ContentStatus) -> tuple[ContentStatus, ...]:
    """
    Statuses from which `new` is reachable.

    The engine folds these into the conditional update filter, so the
    state check and the write are one atomic store operation.
    """
    sources = TRANSITIONS.get(new)
    if sources is None:
        raise ValueError(f"Unknown status: {new}")
    return sources
