"""
Lifecycle engine behaviour on the in-memory store.

Ownership, visibility and state-machine rules for each operation.
"""

from uuid import uuid4

import pytest

from coursebase.domain.errors import ForbiddenError, InvalidInputError, NotFoundError
from tests.factories import article_payload, chapter_payload, course_payload, section_payload


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_course_is_private_and_owned(self, catalog, alice) -> None:
        course = await catalog.courses.create(alice, course_payload())

        assert course.status == "private"
        assert course.creator_id == alice.id
        assert course.slug == f"intro-to-testing-{course.id}"
        assert course.chapters == []

    @pytest.mark.asyncio
    async def test_create_without_title_uses_id_as_slug(self, catalog, alice) -> None:
        course = await catalog.courses.create(alice, {})
        assert course.slug == str(course.id)

    @pytest.mark.asyncio
    async def test_owner_comes_from_actor_not_payload(self, catalog, alice, bob) -> None:
        course = await catalog.courses.create(alice, course_payload(creator=str(bob.id), status="public"))
        assert course.creator_id == alice.id
        assert course.status == "private"

    @pytest.mark.asyncio
    async def test_invalid_attributes_write_nothing(self, catalog, store, alice) -> None:
        with pytest.raises(InvalidInputError):
            await catalog.articles.create(alice, article_payload(title="short"))
        assert store.count("articles") == 0

    @pytest.mark.asyncio
    async def test_anonymous_actor_rejected(self, catalog) -> None:
        with pytest.raises(ForbiddenError):
            await catalog.courses.create(None, course_payload())

    @pytest.mark.asyncio
    async def test_article_owner_field(self, catalog, alice) -> None:
        article = await catalog.articles.create(alice, article_payload())
        assert article.author_id == alice.id


class TestParentLinking:
    @pytest.mark.asyncio
    async def test_chapter_appended_to_course(self, catalog, alice) -> None:
        course = await catalog.courses.create(alice, course_payload())
        first = await catalog.chapters.create(alice, chapter_payload(course.id))
        second = await catalog.chapters.create(alice, chapter_payload(course.id, title="Fixtures and their scopes"))

        reloaded = await catalog.courses.get_by_id(alice, course.id)
        assert reloaded.chapters == [first.id, second.id]
        assert first.course_id == course.id

    @pytest.mark.asyncio
    async def test_section_appended_to_chapter(self, catalog, alice) -> None:
        course = await catalog.courses.create(alice, course_payload())
        chapter = await catalog.chapters.create(alice, chapter_payload(course.id))
        section = await catalog.sections.create(alice, section_payload(chapter.id))

        reloaded = await catalog.chapters.get_by_id(alice, chapter.id)
        assert reloaded.sections == [section.id]
        assert section.chapter_id == chapter.id

    @pytest.mark.asyncio
    async def test_parent_owned_by_someone_else(self, catalog, store, alice, bob) -> None:
        course = await catalog.courses.create(alice, course_payload())
        await catalog.courses.publish(alice, course.id)

        with pytest.raises(NotFoundError) as exc:
            await catalog.chapters.create(bob, chapter_payload(course.id))
        assert exc.value.message == "Cannot find a course with the specified identifier."
        assert store.count("chapters") == 0

    @pytest.mark.asyncio
    async def test_parent_deleted(self, catalog, store, alice) -> None:
        course = await catalog.courses.create(alice, course_payload())
        await catalog.courses.remove(alice, course.id)

        with pytest.raises(NotFoundError):
            await catalog.chapters.create(alice, chapter_payload(course.id))
        assert store.count("chapters") == 0

    @pytest.mark.asyncio
    async def test_parent_missing(self, catalog, alice) -> None:
        with pytest.raises(NotFoundError):
            await catalog.chapters.create(alice, chapter_payload(uuid4()))


class TestReads:
    @pytest.mark.asyncio
    async def test_malformed_id(self, catalog, alice) -> None:
        with pytest.raises(InvalidInputError) as exc:
            await catalog.courses.get_by_id(alice, "not-an-id")
        assert exc.value.message == "The specified course identifier is invalid."

    @pytest.mark.asyncio
    async def test_get_by_slug(self, catalog, alice, bob) -> None:
        course = await catalog.courses.create(alice, course_payload())

        found = await catalog.courses.get_by_slug(alice, course.slug)
        assert found.id == course.id
        with pytest.raises(NotFoundError):
            await catalog.courses.get_by_slug(bob, course.slug)
        with pytest.raises(NotFoundError):
            await catalog.courses.get_by_slug(None, course.slug, "public")

        await catalog.courses.publish(alice, course.id)
        assert (await catalog.courses.get_by_slug(None, course.slug, "public")).id == course.id

    @pytest.mark.asyncio
    async def test_blank_slug(self, catalog, alice) -> None:
        with pytest.raises(InvalidInputError):
            await catalog.courses.get_by_slug(alice, "  ")


class TestListing:
    @pytest.mark.asyncio
    async def test_owner_listing_excludes_deleted_and_foreign(self, catalog, alice, bob) -> None:
        kept = await catalog.courses.create(alice, course_payload(title="Kept"))
        gone = await catalog.courses.create(alice, course_payload(title="Gone"))
        await catalog.courses.create(bob, course_payload(title="Bob's"))
        await catalog.courses.remove(alice, gone.id)

        page = await catalog.courses.list(alice, {"page": 0, "limit": 10})
        assert [c.id for c in page.records] == [kept.id]
        assert page.total_records == 1

    @pytest.mark.asyncio
    async def test_public_listing(self, catalog, alice, bob) -> None:
        published = await catalog.courses.create(alice, course_payload(title="Published"))
        await catalog.courses.create(bob, course_payload(title="Draft"))
        await catalog.courses.publish(alice, published.id)

        page = await catalog.courses.list(None, None, visibility="public")
        assert [c.id for c in page.records] == [published.id]

    @pytest.mark.asyncio
    async def test_most_recently_updated_first(self, catalog, alice) -> None:
        older = await catalog.courses.create(alice, course_payload(title="Older"))
        newer = await catalog.courses.create(alice, course_payload(title="Newer"))

        page = await catalog.courses.list(alice)
        assert [c.id for c in page.records] == [newer.id, older.id]

        await catalog.courses.update(alice, older.id, {"brief": "touched"})
        page = await catalog.courses.list(alice)
        assert [c.id for c in page.records] == [older.id, newer.id]

    @pytest.mark.asyncio
    async def test_pages(self, catalog, alice) -> None:
        for n in range(5):
            await catalog.articles.create(alice, article_payload(title=f"Article number {n}"))

        page = await catalog.articles.list(alice, {"page": 1, "limit": 2})
        assert len(page.records) == 2
        assert page.total_records == 5
        assert page.total_pages == 3
        assert page.previous_page == 0
        assert page.next_page == 2

    @pytest.mark.asyncio
    async def test_filter_by_parent(self, catalog, alice) -> None:
        first = await catalog.courses.create(alice, course_payload(title="First"))
        second = await catalog.courses.create(alice, course_payload(title="Second"))
        chapter = await catalog.chapters.create(alice, chapter_payload(first.id))
        await catalog.chapters.create(alice, chapter_payload(second.id))

        page = await catalog.chapters.list(alice, parent_id=first.id)
        assert [c.id for c in page.records] == [chapter.id]

    @pytest.mark.asyncio
    async def test_parent_filter_on_top_level_kind(self, catalog, alice) -> None:
        with pytest.raises(InvalidInputError):
            await catalog.articles.list(alice, parent_id=uuid4())

    @pytest.mark.asyncio
    async def test_owner_listing_needs_actor(self, catalog) -> None:
        with pytest.raises(ForbiddenError):
            await catalog.courses.list(None)

    @pytest.mark.asyncio
    async def test_bad_limit(self, catalog, alice) -> None:
        with pytest.raises(InvalidInputError):
            await catalog.courses.list(alice, {"limit": 1000})


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_fields(self, catalog, alice) -> None:
        course = await catalog.courses.create(alice, course_payload())
        updated = await catalog.courses.update(alice, course.id, {"title": "Advanced Testing", "linear": True})

        assert updated.title == "Advanced Testing"
        assert updated.linear is True
        assert updated.slug == course.slug

    @pytest.mark.asyncio
    async def test_update_cannot_rewrite_structure(self, catalog, alice) -> None:
        course = await catalog.courses.create(alice, course_payload())
        chapter = await catalog.chapters.create(alice, chapter_payload(course.id))

        updated = await catalog.courses.update(
            alice, course.id, {"chapters": [], "status": "public", "creator": str(uuid4())}
        )
        assert updated.chapters == [chapter.id]
        assert updated.status == "private"
        assert updated.creator_id == alice.id

    @pytest.mark.asyncio
    async def test_non_owner_gets_not_found(self, catalog, alice, bob) -> None:
        course = await catalog.courses.create(alice, course_payload())
        await catalog.courses.publish(alice, course.id)

        with pytest.raises(NotFoundError):
            await catalog.courses.update(bob, course.id, {"title": "Hijacked"})

    @pytest.mark.asyncio
    async def test_invalid_attributes(self, catalog, alice) -> None:
        course = await catalog.courses.create(alice, course_payload())
        with pytest.raises(InvalidInputError):
            await catalog.courses.update(alice, course.id, {"level": "wizard"})

    @pytest.mark.asyncio
    async def test_null_clears_nullable_field(self, catalog, alice) -> None:
        course = await catalog.courses.create(alice, course_payload(imageURL="https://img/cover.png"))
        assert course.image_url == "https://img/cover.png"

        updated = await catalog.courses.update(alice, course.id, {"imageURL": None})

        assert updated.image_url is None
        assert updated.title == course.title

    @pytest.mark.asyncio
    async def test_null_rejected_for_required_field(self, catalog, alice) -> None:
        course = await catalog.courses.create(alice, course_payload())
        chapter = await catalog.chapters.create(alice, chapter_payload(course.id))

        with pytest.raises(InvalidInputError):
            await catalog.chapters.update(alice, chapter.id, {"title": None})
        assert (await catalog.chapters.get_by_id(alice, chapter.id)).title == chapter.title


async def exercise_section(catalog, alice):
    course = await catalog.courses.create(alice, course_payload())
    chapter = await catalog.chapters.create(alice, chapter_payload(course.id))
    return await catalog.sections.create(alice, section_payload(chapter.id, type="exercise"))


class TestSectionExercise:
    @pytest.mark.asyncio
    async def test_link_and_clear_exercise(self, catalog, alice) -> None:
        section = await exercise_section(catalog, alice)
        suite = await catalog.test_suites.create(alice, {"title": "Two sum", "handle": "two-sum"})

        linked = await catalog.sections.update(alice, section.id, {"exercise": str(suite.id)})
        assert linked.exercise_id == suite.id

        cleared = await catalog.sections.update(alice, section.id, {"exercise": None})
        assert cleared.exercise_id is None

    @pytest.mark.asyncio
    async def test_unknown_exercise(self, catalog, alice) -> None:
        section = await exercise_section(catalog, alice)
        with pytest.raises(NotFoundError) as exc:
            await catalog.sections.update(alice, section.id, {"exercise": str(uuid4()), "title": "Renamed section"})
        assert exc.value.message == "Cannot find a test suite with the specified identifier."

        reloaded = await catalog.sections.get_by_id(alice, section.id)
        assert reloaded.exercise_id is None
        assert reloaded.title == section.title


class TestTransitions:
    @pytest.mark.asyncio
    async def test_publish_and_unpublish(self, catalog, alice) -> None:
        course = await catalog.courses.create(alice, course_payload())

        assert (await catalog.courses.publish(alice, course.id)).status == "public"
        assert (await catalog.courses.publish(alice, course.id)).status == "public"
        assert (await catalog.courses.unpublish(alice, course.id)).status == "private"
        assert (await catalog.courses.unpublish(alice, course.id)).status == "private"

    @pytest.mark.asyncio
    async def test_non_owner_cannot_publish(self, catalog, alice, bob) -> None:
        course = await catalog.courses.create(alice, course_payload())
        with pytest.raises(NotFoundError):
            await catalog.courses.publish(bob, course.id)

    @pytest.mark.asyncio
    async def test_remove_returns_true(self, catalog, alice) -> None:
        playlist = await catalog.playlists.create(alice, {"title": "Weekend"})
        assert await catalog.playlists.remove(alice, playlist.id) is True

    @pytest.mark.asyncio
    async def test_remove_twice(self, catalog, alice) -> None:
        playlist = await catalog.playlists.create(alice, {"title": "Weekend"})
        await catalog.playlists.remove(alice, playlist.id)
        with pytest.raises(NotFoundError):
            await catalog.playlists.remove(alice, playlist.id)

    @pytest.mark.asyncio
    async def test_non_owner_cannot_remove(self, catalog, alice, bob) -> None:
        playlist = await catalog.playlists.create(alice, {"title": "Weekend"})
        with pytest.raises(NotFoundError):
            await catalog.playlists.remove(bob, playlist.id)
        assert (await catalog.playlists.get_by_id(alice, playlist.id)).status == "private"
