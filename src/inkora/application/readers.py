"""Full-story and chapter reader pages."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from inkora.domain.models import Chapter, Session, Story
from inkora.domain.ports import BaasClient
from inkora.domain.query import table

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoryReading:
    story: Story
    content: str


@dataclass(frozen=True)
class ChapterReading:
    story: Story
    chapter: Chapter
    previous: Chapter | None = None
    next: Chapter | None = None


def _token(session: Session | None) -> str | None:
    return session.access_token if session is not None else None


async def _load_story(client: BaasClient, story_id: str, token: str | None) -> Story | None:
    result = await client.execute(
        table("stories").select("*").eq("id", story_id).maybe_single(), access_token=token
    )
    if not result.ok or not result.data:
        return None
    return Story.from_row(result.data)


async def read_single_story(
    client: BaasClient, *, story_id: str, session: Session | None = None
) -> StoryReading | None:
    """Load a single story with its full body; None for chaptered or missing stories."""
    token = _token(session)
    story = await _load_story(client, story_id, token)
    if story is None or story.is_chapters:
        return None
    result = await client.execute(
        table("single_stories").select("content").eq("story_id", story_id).maybe_single(),
        access_token=token,
    )
    content = ""
    if result.ok and result.data:
        content = str(result.data.get("content") or "")
    return StoryReading(story=story, content=content)


async def read_chapter(
    client: BaasClient,
    *,
    story_id: str,
    chapter_id: str,
    session: Session | None = None,
) -> ChapterReading | None:
    """Load one chapter with its neighbours and record a chapter view."""
    token = _token(session)
    story = await _load_story(client, story_id, token)
    if story is None or not story.is_chapters:
        return None
    result = await client.execute(
        table("chapters")
        .select("id, title, chapter_number, content")
        .eq("story_id", story_id)
        .order("chapter_number", ascending=True),
        access_token=token,
    )
    chapters = [Chapter.from_row(row) for row in result.rows()]
    index = next(
        (position for position, chapter in enumerate(chapters) if chapter.chapter_id == chapter_id),
        None,
    )
    if index is None:
        return None

    if session is not None:
        view = await client.execute(
            table("chapter_views").insert({"chapter_id": chapter_id, "user_id": session.user_id}),
            access_token=token,
        )
        if view.error is not None:
            logger.debug("reader.chapter_view_not_recorded message=%s", view.error.message)

    return ChapterReading(
        story=story,
        chapter=chapters[index],
        previous=chapters[index - 1] if index > 0 else None,
        next=chapters[index + 1] if index + 1 < len(chapters) else None,
    )
