from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

# --- Enums / Literals ---
ContentStatus = Literal["private", "public", "deleted"]
Visibility = Literal["owner", "public"]
RoleType = Literal["regular", "admin"]
UserStatus = Literal["active", "disabled"]
CourseLevel = Literal["beginner", "intermediate", "expert", "all_levels"]
SectionType = Literal["article", "video", "quiz", "exercise"]
QuestionType = Literal["single_select", "multiple_select"]
Gender = Literal["male", "female", "other"]


def utcnow() -> datetime:
    return datetime.now(UTC)


# --- User ---

class User(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    first_name: str
    last_name: str = ""
    user_name: str = ""
    picture_url: str | None = None
    email_address: str
    email_verified: bool = False
    roles: list[RoleType] = Field(default_factory=lambda: ["regular"])
    status: UserStatus = "active"
    about: str | None = None
    gender: Gender | None = None
    country_code: str | None = None
    birthday: datetime | None = None
    content_language_codes: list[str] = Field(default_factory=lambda: ["en"])
    display_language_code: str = "en"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# --- Content ---

class ContentEntity(BaseModel):
    """Fields every lifecycle-managed kind carries. Owner lives on the subclass."""

    id: UUID = Field(default_factory=uuid4)
    slug: str
    status: ContentStatus = "private"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Course(ContentEntity):
    title: str | None = None
    description: str | None = None
    brief: str | None = None
    level: CourseLevel = "all_levels"
    creator_id: UUID
    image_url: str | None = None
    language_code: str = "en"
    linear: bool = False
    actual_price: int = 0
    discounted_price: int = 0
    requirements: str = ""
    objectives: str = ""
    targets: str = ""
    resources: str = ""
    chapters: list[UUID] = Field(default_factory=list)


class Chapter(ContentEntity):
    title: str
    description: str = ""
    brief: str = ""
    course_id: UUID
    creator_id: UUID
    sections: list[UUID] = Field(default_factory=list)


class QuestionOption(BaseModel):
    text: str
    correct: bool


class Question(BaseModel):
    text: str
    type: QuestionType
    options: list[QuestionOption] = Field(default_factory=list)


class Section(ContentEntity):
    title: str
    type: SectionType = "article"
    description: str = ""
    brief: str = ""
    content: str | None = None
    questions: list[Question] = Field(default_factory=list)
    exercise_id: UUID | None = None
    chapter_id: UUID
    creator_id: UUID


class Article(ContentEntity):
    title: str
    description: str = ""
    content: str = ""
    author_id: UUID
    image_url: str | None = None
    language_code: str = "en"


class Playlist(ContentEntity):
    title: str = ""
    description: str = ""
    courses: list[UUID] = Field(default_factory=list)
    creator_id: UUID


# --- Exercises ---

class TestCase(BaseModel):
    __test__ = False

    id: UUID = Field(default_factory=uuid4)
    title: str
    description: str = ""


class TestSuite(BaseModel):
    __test__ = False

    id: UUID = Field(default_factory=uuid4)
    title: str
    description: str = ""
    handle: str
    tests: list[TestCase] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    author_id: UUID
    status: ContentStatus = "private"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
