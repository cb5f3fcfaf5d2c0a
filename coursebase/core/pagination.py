import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from coursebase.domain.errors import FieldError, InvalidInputError
from coursebase.rules.models import PaginationRules

T = TypeVar("T")


@dataclass(frozen=True)
class PageParams:
    page: int = 0
    limit: int = 20

    @property
    def offset(self) -> int:
        return self.page * self.limit


@dataclass(frozen=True)
class Page(Generic[T]):
    """
    One page of results. Page numbers are zero-based; previous/next are -1
    when there is no such page.
    """

    records: list[T]
    total_records: int
    total_pages: int
    previous_page: int
    next_page: int
    has_previous_page: bool
    has_next_page: bool
    page: int = 0
    limit: int = 0

    @classmethod
    def build(cls, records: list[T], total: int, params: PageParams) -> "Page[T]":
        total_pages = math.ceil(total / params.limit) if params.limit else 0
        has_previous = params.page > 0
        has_next = params.page + 1 < total_pages
        return cls(
            records=records,
            total_records=total,
            total_pages=total_pages,
            previous_page=params.page - 1 if has_previous else -1,
            next_page=params.page + 1 if has_next else -1,
            has_previous_page=has_previous,
            has_next_page=has_next,
            page=params.page,
            limit=params.limit,
        )


def _as_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidInputError(f'"{name}" must be an integer', [FieldError(name, "must be an integer")])
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(
            f'"{name}" must be an integer', [FieldError(name, "must be an integer")]
        ) from None


def parse_page_params(raw: Mapping[str, Any] | PageParams | None, rules: PaginationRules) -> PageParams:
    """
    Validate page/limit against the configured bounds.

    Missing values fall back to page 0 and the configured default limit.
    """
    if isinstance(raw, PageParams):
        raw = {"page": raw.page, "limit": raw.limit}
    raw = raw or {}

    page = raw.get("page")
    limit = raw.get("limit")
    page = 0 if page is None else _as_int("page", page)
    limit = rules.default_limit if limit is None else _as_int("limit", limit)

    if page < 0:
        raise InvalidInputError(
            '"page" must be greater than or equal to 0',
            [FieldError("page", "must be greater than or equal to 0")],
        )
    if not rules.min_limit <= limit <= rules.max_limit:
        message = f"must be between {rules.min_limit} and {rules.max_limit}"
        raise InvalidInputError(f'"limit" {message}', [FieldError("limit", message)])
    return PageParams(page=page, limit=limit)
