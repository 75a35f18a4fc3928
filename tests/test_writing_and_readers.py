from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from inkora.adapters.sqlite_baas import SQLiteBaas
from inkora.application.catalog import list_owner_stories, list_recent_stories
from inkora.application.readers import read_chapter, read_single_story
from inkora.application.session_store import SessionStore
from inkora.application.writing import (
    StoryWriteError,
    add_chapter,
    create_story,
    list_chapters,
    load_owned_story,
    load_single_content,
    save_single_content,
    update_metadata,
)
from inkora.domain.models import Session, Story
from inkora.domain.query import BaasResult, Query, table


@pytest.fixture
def baas(tmp_path: Path) -> SQLiteBaas:
    return SQLiteBaas(db_path=tmp_path / "inkora.db")


def _session(baas: SQLiteBaas, *, email: str, username: str) -> Session:
    async def flow() -> Session | None:
        await baas.sign_up(
            email=email,
            password="password123",
            first_name="Nora",
            last_name="Writer",
            username=username,
        )
        signed_in = await baas.sign_in(email=email, password="password123")
        return await SessionStore(baas).resolve(signed_in.data["access_token"])

    session = asyncio.run(flow())
    assert session is not None
    return session


def _create(
    baas: SQLiteBaas, session: Session, *, is_chapters: bool, title: str = "Tides"
) -> Story:
    return asyncio.run(
        create_story(
            baas,
            session=session,
            title=title,
            description=None,
            tags=["sea"],
            is_chapters=is_chapters,
            content_type="hekayə",
        )
    )


def test_create_story_starts_as_owned_draft(baas: SQLiteBaas) -> None:
    owner = _session(baas, email="owner@example.com", username="owner")
    intruder = _session(baas, email="intruder@example.com", username="intruder")

    story = _create(baas, owner, is_chapters=False)

    assert story.owner_id == owner.user_id
    assert story.status == "draft"
    assert story.tags == ("sea",)
    assert asyncio.run(load_owned_story(baas, session=owner, story_id=story.story_id)) == story
    assert asyncio.run(load_owned_story(baas, session=intruder, story_id=story.story_id)) is None
    assert asyncio.run(load_owned_story(baas, session=owner, story_id="missing")) is None


def test_chapters_are_numbered_in_sequence(baas: SQLiteBaas) -> None:
    owner = _session(baas, email="owner@example.com", username="owner")
    story = _create(baas, owner, is_chapters=True)

    first = asyncio.run(
        add_chapter(baas, session=owner, story=story, title="Ebb", content="Low water.")
    )
    second = asyncio.run(
        add_chapter(baas, session=owner, story=story, title="Flow", content="High water.")
    )
    chapters = asyncio.run(list_chapters(baas, session=owner, story=story))

    assert (first.chapter_number, second.chapter_number) == (1, 2)
    assert [chapter.title for chapter in chapters] == ["Ebb", "Flow"]


def test_single_content_is_inserted_then_replaced(baas: SQLiteBaas) -> None:
    owner = _session(baas, email="owner@example.com", username="owner")
    story = _create(baas, owner, is_chapters=False)

    assert asyncio.run(load_single_content(baas, session=owner, story=story)) == ""
    asyncio.run(save_single_content(baas, session=owner, story=story, content="Draft one"))
    asyncio.run(save_single_content(baas, session=owner, story=story, content="Draft two"))

    assert asyncio.run(load_single_content(baas, session=owner, story=story)) == "Draft two"
    rows = baas.execute_sync(table("single_stories").eq("story_id", story.story_id).count())
    assert rows.count == 1


def test_update_metadata_rewrites_title_and_tags(baas: SQLiteBaas) -> None:
    owner = _session(baas, email="owner@example.com", username="owner")
    story = _create(baas, owner, is_chapters=True)

    asyncio.run(
        update_metadata(
            baas,
            session=owner,
            story=story,
            title="Spring Tides",
            description="Moon pull.",
            tags=["moon", "sea"],
        )
    )
    reloaded = asyncio.run(load_owned_story(baas, session=owner, story_id=story.story_id))

    assert reloaded is not None
    assert reloaded.title == "Spring Tides"
    assert reloaded.description == "Moon pull."
    assert reloaded.tags == ("moon", "sea")


def test_backend_failures_raise_story_write_error() -> None:
    class FailingBaas:
        async def execute(self, query: Query, *, access_token: str | None = None) -> BaasResult:
            return BaasResult.failure("permission denied", code="42501", status=403)

    session = Session(user_id="u1", email="u1@example.com", access_token="t")
    story = Story(story_id="s1", owner_id="u1", title="T")

    with pytest.raises(StoryWriteError, match="Could not create the story"):
        asyncio.run(
            create_story(
                FailingBaas(),  # type: ignore[arg-type]
                session=session,
                title="T",
                description=None,
                tags=[],
                is_chapters=False,
                content_type="hekayə",
            )
        )
    with pytest.raises(StoryWriteError, match="Could not load chapters"):
        asyncio.run(
            list_chapters(FailingBaas(), session=session, story=story)  # type: ignore[arg-type]
        )


def test_catalog_lists_recent_and_owned_stories(baas: SQLiteBaas) -> None:
    owner = _session(baas, email="owner@example.com", username="owner")
    other = _session(baas, email="other@example.com", username="other")
    _create(baas, owner, is_chapters=False, title="First")
    _create(baas, other, is_chapters=False, title="Second")
    _create(baas, owner, is_chapters=True, title="Third")

    recent = asyncio.run(list_recent_stories(baas, limit=2))
    owned = asyncio.run(
        list_owner_stories(baas, owner_id=owner.user_id, access_token=owner.access_token)
    )

    assert [story.title for story in recent] == ["Third", "Second"]
    assert [story.title for story in owned] == ["Third", "First"]


def test_single_story_reader(baas: SQLiteBaas) -> None:
    owner = _session(baas, email="owner@example.com", username="owner")
    single = _create(baas, owner, is_chapters=False)
    chaptered = _create(baas, owner, is_chapters=True)
    asyncio.run(save_single_content(baas, session=owner, story=single, content="Full text"))

    reading = asyncio.run(read_single_story(baas, story_id=single.story_id))

    assert reading is not None
    assert reading.content == "Full text"
    assert asyncio.run(read_single_story(baas, story_id=chaptered.story_id)) is None
    assert asyncio.run(read_single_story(baas, story_id="missing")) is None


def test_chapter_reader_links_neighbours_and_records_views(baas: SQLiteBaas) -> None:
    owner = _session(baas, email="owner@example.com", username="owner")
    reader = _session(baas, email="reader@example.com", username="reader")
    story = _create(baas, owner, is_chapters=True)
    chapters = [
        asyncio.run(add_chapter(baas, session=owner, story=story, title=title, content=title))
        for title in ("One", "Two", "Three")
    ]

    middle = asyncio.run(
        read_chapter(
            baas, story_id=story.story_id, chapter_id=chapters[1].chapter_id, session=reader
        )
    )
    first = asyncio.run(
        read_chapter(baas, story_id=story.story_id, chapter_id=chapters[0].chapter_id)
    )

    assert middle is not None
    assert middle.chapter.content == "Two"
    assert middle.previous is not None and middle.previous.title == "One"
    assert middle.next is not None and middle.next.title == "Three"
    assert first is not None
    assert first.previous is None
    views = baas.execute_sync(
        table("chapter_views").eq("chapter_id", chapters[1].chapter_id).count()
    )
    assert views.count == 1
    assert baas.execute_sync(table("chapter_views").count()).count == 1
    assert (
        asyncio.run(read_chapter(baas, story_id=story.story_id, chapter_id="missing")) is None
    )
