"""
Entity-kind descriptors.

The lifecycle engine is written once and parameterized by one of these per
content kind: which model and schemas to use, which field names the owner,
how the kind hangs under its parent, which children a soft delete sweeps
along with it, and which references must point at live documents.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel

from coursebase.domain.attributes import (
    ArticleCreate,
    ArticleUpdate,
    ChapterCreate,
    ChapterUpdate,
    CourseCreate,
    CourseUpdate,
    PlaylistCreate,
    PlaylistUpdate,
    SectionCreate,
    SectionUpdate,
)
from coursebase.domain.entities import Article, Chapter, ContentEntity, Course, Playlist, Section


@dataclass(frozen=True)
class ParentLink:
    """
    Containment edge from a child kind up to its parent.

    `foreign_key` is the child's back reference (set once, never changed);
    `list_field` is the parent's ordered list of child ids.
    """

    kind: str
    foreign_key: str
    list_field: str


@dataclass(frozen=True)
class CascadeRule:
    """On soft delete, also delete every `child` whose `foreign_key` points here."""

    child: str
    foreign_key: str


@dataclass(frozen=True)
class Reference:
    """A loose pointer to a document elsewhere. Setting it requires a live target."""

    foreign_key: str
    collection: str
    label: str


@dataclass(frozen=True)
class EntityKind:
    name: str
    label: str
    collection: str
    model: type[ContentEntity]
    create_schema: type[BaseModel]
    update_schema: type[BaseModel]
    owner_field: str = "creator_id"
    title_field: str = "title"
    parent: ParentLink | None = None
    cascade: tuple[CascadeRule, ...] = field(default_factory=tuple)
    references: tuple[Reference, ...] = field(default_factory=tuple)

    def not_found_message(self) -> str:
        return f"Cannot find a {self.label} with the specified identifier."


COURSE = EntityKind(
    name="course",
    label="course",
    collection="courses",
    model=Course,
    create_schema=CourseCreate,
    update_schema=CourseUpdate,
    cascade=(CascadeRule(child="chapter", foreign_key="course_id"),),
)

CHAPTER = EntityKind(
    name="chapter",
    label="chapter",
    collection="chapters",
    model=Chapter,
    create_schema=ChapterCreate,
    update_schema=ChapterUpdate,
    parent=ParentLink(kind="course", foreign_key="course_id", list_field="chapters"),
    cascade=(CascadeRule(child="section", foreign_key="chapter_id"),),
)

SECTION = EntityKind(
    name="section",
    label="section",
    collection="sections",
    model=Section,
    create_schema=SectionCreate,
    update_schema=SectionUpdate,
    parent=ParentLink(kind="chapter", foreign_key="chapter_id", list_field="sections"),
    references=(Reference(foreign_key="exercise_id", collection="test_suites", label="test suite"),),
)

ARTICLE = EntityKind(
    name="article",
    label="article",
    collection="articles",
    model=Article,
    create_schema=ArticleCreate,
    update_schema=ArticleUpdate,
    owner_field="author_id",
)

# Playlists reference courses loosely: no containment, no cascade.
PLAYLIST = EntityKind(
    name="playlist",
    label="playlist",
    collection="playlists",
    model=Playlist,
    create_schema=PlaylistCreate,
    update_schema=PlaylistUpdate,
)

KINDS: dict[str, EntityKind] = {
    kind.name: kind for kind in (COURSE, CHAPTER, SECTION, ARTICLE, PLAYLIST)
}


def get_kind(name: str) -> EntityKind:
    try:
        return KINDS[name]
    except KeyError:
        raise ValueError(f"Unknown entity kind: {name}") from None
