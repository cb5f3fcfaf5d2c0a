"""
Wire shapes for the REST surface.

Responses are camelCase. Owner and parent references go out under the
short names clients already use (`creator`, `author`, `course`,
`chapter`, `exercise`) and URLs keep their upper-case suffix.
"""

from datetime import datetime
from typing import Any, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from coursebase.core.pagination import Page
from coursebase.domain.entities import (
    ContentStatus,
    CourseLevel,
    Gender,
    QuestionType,
    RoleType,
    SectionType,
    UserStatus,
)


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# --- Content ---

class ContentOut(WireModel):
    id: UUID
    slug: str
    status: ContentStatus
    created_at: datetime
    updated_at: datetime


class CourseOut(ContentOut):
    title: str | None = None
    description: str | None = None
    brief: str | None = None
    level: CourseLevel
    creator_id: UUID = Field(alias="creator")
    image_url: str | None = Field(None, alias="imageURL")
    language_code: str
    linear: bool
    actual_price: int
    discounted_price: int
    requirements: str
    objectives: str
    targets: str
    resources: str
    chapters: list[UUID]


class ChapterOut(ContentOut):
    title: str
    description: str
    brief: str
    course_id: UUID = Field(alias="course")
    creator_id: UUID = Field(alias="creator")
    sections: list[UUID]


class QuestionOptionOut(WireModel):
    text: str
    correct: bool


class QuestionOut(WireModel):
    text: str
    type: QuestionType
    options: list[QuestionOptionOut]


class SectionOut(ContentOut):
    title: str
    type: SectionType
    description: str
    brief: str
    content: str | None = None
    questions: list[QuestionOut]
    exercise_id: UUID | None = Field(None, alias="exercise")
    chapter_id: UUID = Field(alias="chapter")
    creator_id: UUID = Field(alias="creator")


class ArticleOut(ContentOut):
    title: str
    description: str
    content: str
    author_id: UUID = Field(alias="author")
    image_url: str | None = Field(None, alias="imageURL")
    language_code: str


class PlaylistOut(ContentOut):
    title: str
    description: str
    courses: list[UUID]
    creator_id: UUID = Field(alias="creator")


class ChapterOutline(ChapterOut):
    sections: list[SectionOut]  # type: ignore[assignment]


class CourseOutline(CourseOut):
    chapters: list[ChapterOutline]  # type: ignore[assignment]


# --- Test suites ---

class TestCaseOut(WireModel):
    __test__ = False

    id: UUID
    title: str
    description: str


class TestSuiteOut(WireModel):
    __test__ = False

    id: UUID
    title: str
    description: str
    handle: str
    tests: list[TestCaseOut]
    tags: list[str]
    author_id: UUID = Field(alias="author")
    status: ContentStatus
    created_at: datetime
    updated_at: datetime


# --- Users ---

class UserOut(WireModel):
    id: UUID
    first_name: str
    last_name: str
    user_name: str
    picture_url: str | None = Field(None, alias="pictureURL")
    email_address: str
    email_verified: bool
    roles: list[RoleType]
    status: UserStatus
    about: str | None = None
    gender: Gender | None = None
    country_code: str | None = None
    birthday: datetime | None = None
    content_language_codes: list[str]
    display_language_code: str
    created_at: datetime
    updated_at: datetime


# --- Envelopes ---

T = TypeVar("T")


class PageResponse(WireModel, Generic[T]):
    total_records: int
    total_pages: int
    previous_page: int
    next_page: int
    has_previous_page: bool
    has_next_page: bool
    records: list[T]


class SuccessResponse(WireModel):
    success: bool = True


class VersionResponse(WireModel):
    version: str


class ErrorResponse(WireModel):
    message: str
    errors: list[dict[str, Any]] | None = None


def to_page_response(page: Page[Any], out_model: type[WireModel]) -> PageResponse[Any]:
    return PageResponse[out_model](  # type: ignore[valid-type]
        total_records=page.total_records,
        total_pages=page.total_pages,
        previous_page=page.previous_page,
        next_page=page.next_page,
        has_previous_page=page.has_previous_page,
        has_next_page=page.has_next_page,
        records=[out_model.model_validate(r) for r in page.records],
    )
