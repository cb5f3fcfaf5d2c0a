"""
Error taxonomy shared by the lifecycle engine, the user directory and the
transport layer.

NotFound deliberately covers "does not exist", "is deleted" and "you may not
see it"; callers never learn which.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """One validation failure on one attribute."""

    field: str | None
    message: str


class CoursebaseError(Exception):
    """Base class for every error the core raises on purpose."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidInputError(CoursebaseError):
    """Malformed identifier, attribute schema failure or bad pagination."""

    def __init__(self, message: str, errors: list[FieldError] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)


class NotFoundError(CoursebaseError):
    """Missing, deleted, or not visible to the acting user."""


class ForbiddenError(CoursebaseError):
    """Authenticated, but lacking the role required to reach the engine."""


class UnauthenticatedError(CoursebaseError):
    """Missing or invalid credential."""


class InternalError(CoursebaseError):
    """Store or transaction failure. The message is for logs only."""
