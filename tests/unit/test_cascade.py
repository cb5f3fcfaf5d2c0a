"""
Cascading soft delete and backward-only unlinking.
"""

import pytest

from coursebase.adapters.memory import InMemoryContentStore, InMemorySession
from coursebase.core.catalog import build_catalog
from coursebase.domain.errors import NotFoundError
from coursebase.ports.store import eq
from tests.factories import TickingClock, chapter_payload, course_payload, section_payload


async def raw(store, collection, entity_id) -> dict:
    return await store.find_one(collection, [eq("id", entity_id)])


async def build_tree(catalog, owner):
    """Course with chapters [C1, C2]; C1 has sections [S1, S2], C2 has [S3]."""
    course = await catalog.courses.create(owner, course_payload())
    c1 = await catalog.chapters.create(owner, chapter_payload(course.id, title="Chapter one: the basics"))
    c2 = await catalog.chapters.create(owner, chapter_payload(course.id, title="Chapter two: going further"))
    s1 = await catalog.sections.create(owner, section_payload(c1.id, title="Section one"))
    s2 = await catalog.sections.create(owner, section_payload(c1.id, title="Section two"))
    s3 = await catalog.sections.create(owner, section_payload(c2.id, title="Section three"))
    return course, (c1, c2), (s1, s2, s3)


class TestCourseCascade:
    @pytest.mark.asyncio
    async def test_everything_below_is_deleted(self, catalog, store, alice) -> None:
        course, chapters, sections = await build_tree(catalog, alice)

        await catalog.courses.remove(alice, course.id)

        assert (await raw(store, "courses", course.id))["status"] == "deleted"
        for chapter in chapters:
            assert (await raw(store, "chapters", chapter.id))["status"] == "deleted"
        for section in sections:
            assert (await raw(store, "sections", section.id))["status"] == "deleted"

    @pytest.mark.asyncio
    async def test_child_lists_left_untouched(self, catalog, store, alice) -> None:
        course, (c1, c2), (s1, s2, s3) = await build_tree(catalog, alice)

        await catalog.courses.remove(alice, course.id)

        assert (await raw(store, "courses", course.id))["chapters"] == [str(c1.id), str(c2.id)]
        assert (await raw(store, "chapters", c1.id))["sections"] == [str(s1.id), str(s2.id)]
        assert (await raw(store, "chapters", c2.id))["sections"] == [str(s3.id)]

    @pytest.mark.asyncio
    async def test_descendants_unreadable_afterwards(self, catalog, alice) -> None:
        course, (c1, _), (s1, _, _) = await build_tree(catalog, alice)
        await catalog.courses.remove(alice, course.id)

        with pytest.raises(NotFoundError):
            await catalog.chapters.get_by_id(alice, c1.id)
        with pytest.raises(NotFoundError):
            await catalog.sections.get_by_id(alice, s1.id)


class TestChapterDelete:
    @pytest.mark.asyncio
    async def test_direct_delete_unlinks_from_course(self, catalog, store, alice) -> None:
        course, (c1, c2), (s1, s2, _) = await build_tree(catalog, alice)

        await catalog.chapters.remove(alice, c1.id)

        reloaded = await catalog.courses.get_by_id(alice, course.id)
        assert reloaded.chapters == [c2.id]
        # The deleted chapter keeps its own section list.
        assert (await raw(store, "chapters", c1.id))["sections"] == [str(s1.id), str(s2.id)]
        for section in (s1, s2):
            doc = await raw(store, "sections", section.id)
            assert doc["status"] == "deleted"
            assert doc["chapter_id"] == str(c1.id)

    @pytest.mark.asyncio
    async def test_sibling_untouched(self, catalog, alice) -> None:
        _, (c1, c2), (_, _, s3) = await build_tree(catalog, alice)

        await catalog.chapters.remove(alice, c1.id)

        assert (await catalog.chapters.get_by_id(alice, c2.id)).status == "private"
        assert (await catalog.sections.get_by_id(alice, s3.id)).status == "private"

    @pytest.mark.asyncio
    async def test_section_delete_unlinks_from_chapter(self, catalog, alice) -> None:
        _, (c1, _), (s1, s2, _) = await build_tree(catalog, alice)

        await catalog.sections.remove(alice, s1.id)

        assert (await catalog.chapters.get_by_id(alice, c1.id)).sections == [s2.id]


class FailingSession(InMemorySession):
    async def update_many(self, collection, query, changes):
        raise RuntimeError("store went away")


class FailingPushSession(InMemorySession):
    async def push(self, collection, doc_id, field, value):
        raise RuntimeError("store went away")


class FlakyStore(InMemoryContentStore):
    """Fails inside transactions once `armed` is set."""

    def __init__(self, clock, session_type):
        super().__init__(clock)
        self.armed = False
        self.session_type = session_type

    def _session_for(self, collections):
        if self.armed:
            return self.session_type(collections, self._clock)
        return super()._session_for(collections)


class TestTransactionRollback:
    @pytest.mark.asyncio
    async def test_failed_cascade_leaves_course_live(self, alice) -> None:
        store = FlakyStore(TickingClock(), FailingSession)
        catalog = build_catalog(store)
        course, (c1, _), _ = await build_tree(catalog, alice)

        store.armed = True
        with pytest.raises(RuntimeError):
            await catalog.courses.remove(alice, course.id)
        store.armed = False

        assert (await catalog.courses.get_by_id(alice, course.id)).status == "private"
        assert (await catalog.chapters.get_by_id(alice, c1.id)).status == "private"

    @pytest.mark.asyncio
    async def test_failed_parent_link_discards_child(self, alice) -> None:
        store = FlakyStore(TickingClock(), FailingPushSession)
        catalog = build_catalog(store)
        course = await catalog.courses.create(alice, course_payload())

        store.armed = True
        with pytest.raises(RuntimeError):
            await catalog.chapters.create(alice, chapter_payload(course.id))
        store.armed = False

        assert store.count("chapters") == 0
        assert (await catalog.courses.get_by_id(alice, course.id)).chapters == []
