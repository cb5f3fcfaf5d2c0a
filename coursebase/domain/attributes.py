"""
Attribute schemas for create/update payloads.

Payloads arrive from the transport layer as plain mappings (camelCase or
snake_case keys). Unknown keys are dropped; everything else is checked here
before the engine touches the store. Ownership, status, slug and parent
references are deliberately absent from every update schema: they are set
once at creation.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, ClassVar, Literal, TypeVar
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from coursebase.domain.entities import CourseLevel, Gender, Question, SectionType
from coursebase.domain.errors import FieldError, InvalidInputError

LANGUAGE_CODES: tuple[str, ...] = (
    "en", "hi", "bn", "ta", "te", "kn", "ml", "mr", "gu", "pa",
    "es", "fr", "de", "pt", "it", "ja", "zh", "ko", "ru", "ar",
)


class AttributesModel(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )


def _check_language(value: str | None) -> str | None:
    if value is not None and value not in LANGUAGE_CODES:
        raise ValueError(f"must be one of {', '.join(LANGUAGE_CODES)}")
    return value


class UpdateModel(AttributesModel):
    """
    Partial update. Omitted fields are left alone; an explicit null clears a
    field, and only the fields listed in `nullable` may be cleared.
    """

    nullable: ClassVar[frozenset[str]] = frozenset()

    @field_validator("*")
    @classmethod
    def reject_null(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None and info.field_name not in cls.nullable:
            raise ValueError("may not be null")
        return value


# --- Course ---

class CourseCreate(AttributesModel):
    title: str | None = Field(None, max_length=504)
    description: str | None = Field(None, max_length=1024)
    brief: str | None = Field(None, max_length=160)
    level: CourseLevel = "all_levels"
    image_url: str | None = Field(None, alias="imageURL")
    language_code: str = "en"
    linear: bool = False
    actual_price: int = Field(0, ge=0)
    discounted_price: int = Field(0, ge=0)
    requirements: str = Field("", max_length=512)
    objectives: str = Field("", max_length=512)
    targets: str = Field("", max_length=512)
    resources: str = Field("", max_length=512)

    check_language = field_validator("language_code")(_check_language)


class CourseUpdate(UpdateModel):
    nullable: ClassVar[frozenset[str]] = frozenset({"title", "description", "brief", "image_url"})

    title: str | None = Field(None, max_length=504)
    description: str | None = Field(None, max_length=1024)
    brief: str | None = Field(None, max_length=160)
    level: CourseLevel | None = None
    image_url: str | None = Field(None, alias="imageURL")
    language_code: str | None = None
    linear: bool | None = None
    actual_price: int | None = Field(None, ge=0)
    discounted_price: int | None = Field(None, ge=0)
    requirements: str | None = Field(None, max_length=512)
    objectives: str | None = Field(None, max_length=512)
    targets: str | None = Field(None, max_length=512)
    resources: str | None = Field(None, max_length=512)

    check_language = field_validator("language_code")(_check_language)


# --- Chapter ---

class ChapterCreate(AttributesModel):
    title: str = Field(..., min_length=16, max_length=504)
    course_id: UUID = Field(..., alias="course")
    description: str = Field("", max_length=1024)
    brief: str = Field("", max_length=160)


class ChapterUpdate(UpdateModel):
    title: str | None = Field(None, min_length=16, max_length=504)
    description: str | None = Field(None, max_length=1024)
    brief: str | None = Field(None, max_length=160)


# --- Section ---

class SectionCreate(AttributesModel):
    title: str = Field(..., min_length=8, max_length=504)
    type: SectionType
    chapter_id: UUID = Field(..., alias="chapter")
    description: str = Field("", max_length=1024)
    brief: str = Field("", max_length=160)


# Section type is fixed at creation, and a section never moves chapters.
class SectionUpdate(UpdateModel):
    nullable: ClassVar[frozenset[str]] = frozenset({"content", "exercise_id"})

    title: str | None = Field(None, min_length=8, max_length=504)
    description: str | None = Field(None, max_length=1024)
    brief: str | None = Field(None, max_length=160)
    content: str | None = Field(None, max_length=10240)
    questions: list[Question] | None = None
    exercise_id: UUID | None = Field(None, alias="exercise")


# --- Article ---

class ArticleCreate(AttributesModel):
    title: str = Field(..., min_length=10, max_length=256)
    description: str = Field(..., max_length=1024)
    content: str = Field(..., max_length=10240)
    image_url: str | None = Field(None, alias="imageURL")
    language_code: str = "en"

    check_language = field_validator("language_code")(_check_language)


class ArticleUpdate(UpdateModel):
    nullable: ClassVar[frozenset[str]] = frozenset({"image_url"})

    title: str | None = Field(None, min_length=10, max_length=256)
    description: str | None = Field(None, max_length=1024)
    content: str | None = Field(None, max_length=10240)
    image_url: str | None = Field(None, alias="imageURL")
    language_code: str | None = None

    check_language = field_validator("language_code")(_check_language)


# --- Playlist ---

class PlaylistCreate(AttributesModel):
    title: str = Field("", max_length=512)
    description: str = Field("", max_length=1024)
    courses: list[UUID] = Field(default_factory=list)


class PlaylistUpdate(UpdateModel):
    title: str | None = Field(None, max_length=512)
    description: str | None = Field(None, max_length=1024)
    courses: list[UUID] | None = None


# --- Test suites ---

class TestCaseCreate(AttributesModel):
    __test__ = False

    title: str = Field(..., min_length=1, max_length=1024)
    description: str = Field("", max_length=2048)


class TestSuiteCreate(AttributesModel):
    __test__ = False

    title: str = Field(..., min_length=1, max_length=1024)
    description: str = Field("", max_length=2048)
    handle: str = Field(..., min_length=1, max_length=256)
    tests: list[TestCaseCreate] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


# --- Users ---

class ProfileUpdate(UpdateModel):
    nullable: ClassVar[frozenset[str]] = frozenset({"gender", "country_code", "birthday", "about"})

    first_name: str | None = Field(None, min_length=1, max_length=30)
    last_name: str | None = Field(None, max_length=30)
    gender: Gender | None = None
    country_code: str | None = Field(None, min_length=2, max_length=2)
    birthday: datetime | None = None
    content_language_codes: list[str] | None = None
    display_language_code: str | None = None
    about: str | None = Field(None, max_length=512)

    check_language = field_validator("display_language_code")(_check_language)

    @field_validator("content_language_codes")
    @classmethod
    def check_languages(cls, value: list[str] | None) -> list[str] | None:
        for code in value or []:
            _check_language(code)
        return value


DateRange = Literal[
    "all_time",
    "last_3_months",
    "last_6_months",
    "last_9_months",
    "last_12_months",
    "last_15_months",
    "last_18_months",
    "custom",
]


class UserListFilter(AttributesModel):
    date_range: DateRange = "all_time"
    start_date: datetime | None = None
    end_date: datetime | None = None
    search: str | None = None

    @field_validator("search")
    @classmethod
    def blank_search_is_none(cls, value: str | None) -> str | None:
        return value or None

    @model_validator(mode="after")
    def check_custom_range(self) -> UserListFilter:
        if self.date_range == "custom" and (self.start_date is None or self.end_date is None):
            raise ValueError("a custom date range needs both startDate and endDate")
        return self


# --- Validation ---

M = TypeVar("M", bound=BaseModel)


def _describe(error: dict[str, Any]) -> FieldError:
    loc = ".".join(str(part) for part in error.get("loc", ()))
    return FieldError(field=loc or None, message=error.get("msg", "is invalid"))


def validate_attributes(schema: type[M], payload: Mapping[str, Any] | BaseModel | None) -> M:
    """
    Validate a raw payload against an attribute schema.

    Returns the typed model, or raises InvalidInputError carrying one
    FieldError per failure and a human-readable summary message.
    """
    if isinstance(payload, schema):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(by_alias=True, exclude_unset=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise InvalidInputError("The request body must be an object.")

    try:
        return schema.model_validate(dict(payload))
    except ValidationError as e:
        errors = [_describe(err) for err in e.errors()]
        summary = "; ".join(
            f'"{err.field}" {err.message}' if err.field else err.message for err in errors
        )
        raise InvalidInputError(summary, errors) from e
