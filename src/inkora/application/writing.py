"""Owner-side writing flows: new stories, chapters, bodies, and metadata."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from inkora.domain.models import Chapter, Session, Story
from inkora.domain.ports import BaasClient
from inkora.domain.query import BaasResult, table

logger = logging.getLogger(__name__)


class StoryWriteError(RuntimeError):
    """Raised when the backend rejects a writing operation."""


def _raise_on_error(result: BaasResult, *, action: str) -> None:
    if result.error is not None:
        logger.warning("writing.failed action=%s message=%s", action, result.error.message)
        raise StoryWriteError(f"Could not {action}.")


def _first_row(result: BaasResult, *, action: str) -> dict[str, object]:
    _raise_on_error(result, action=action)
    rows = result.rows()
    if not rows:
        raise StoryWriteError(f"Could not {action}.")
    return rows[0]


async def create_story(
    client: BaasClient,
    *,
    session: Session,
    title: str,
    description: str | None,
    tags: Sequence[str],
    is_chapters: bool,
    content_type: str,
) -> Story:
    result = await client.execute(
        table("stories")
        .insert(
            {
                "user_id": session.user_id,
                "title": title,
                "description": description,
                "tags": list(tags),
                "is_chapters": is_chapters,
                "status": "draft",
                "content_type": content_type,
            }
        )
        .returning_columns("*"),
        access_token=session.access_token,
    )
    story = Story.from_row(_first_row(result, action="create the story"))
    logger.info("writing.story_created story_id=%s chaptered=%s", story.story_id, is_chapters)
    return story


async def load_owned_story(client: BaasClient, *, session: Session, story_id: str) -> Story | None:
    """Return the story when the session user owns it."""
    result = await client.execute(
        table("stories").select("*").eq("id", story_id).maybe_single(),
        access_token=session.access_token,
    )
    if not result.ok or not result.data:
        return None
    story = Story.from_row(result.data)
    if story.owner_id != session.user_id:
        return None
    return story


async def list_chapters(client: BaasClient, *, session: Session, story: Story) -> list[Chapter]:
    result = await client.execute(
        table("chapters")
        .select("id, title, chapter_number")
        .eq("story_id", story.story_id)
        .order("chapter_number", ascending=True),
        access_token=session.access_token,
    )
    _raise_on_error(result, action="load chapters")
    return [Chapter.from_row(row) for row in result.rows()]


async def add_chapter(
    client: BaasClient, *, session: Session, story: Story, title: str, content: str
) -> Chapter:
    """Append a chapter numbered after the current last chapter."""
    existing = await list_chapters(client, session=session, story=story)
    next_number = max((chapter.chapter_number for chapter in existing), default=0) + 1
    result = await client.execute(
        table("chapters")
        .insert(
            {
                "story_id": story.story_id,
                "title": title,
                "chapter_number": next_number,
                "content": content,
            }
        )
        .returning_columns("*"),
        access_token=session.access_token,
    )
    return Chapter.from_row(_first_row(result, action="add the chapter"))


async def load_single_content(client: BaasClient, *, session: Session, story: Story) -> str:
    result = await client.execute(
        table("single_stories").select("content").eq("story_id", story.story_id).maybe_single(),
        access_token=session.access_token,
    )
    _raise_on_error(result, action="load the story text")
    if not result.data:
        return ""
    return str(result.data.get("content") or "")


async def save_single_content(
    client: BaasClient, *, session: Session, story: Story, content: str
) -> None:
    """Insert or replace the body of a single story."""
    existing = await client.execute(
        table("single_stories").select("story_id").eq("story_id", story.story_id).maybe_single(),
        access_token=session.access_token,
    )
    _raise_on_error(existing, action="save the story text")
    if existing.data:
        query = table("single_stories").update({"content": content}).eq("story_id", story.story_id)
    else:
        query = table("single_stories").insert({"story_id": story.story_id, "content": content})
    result = await client.execute(query, access_token=session.access_token)
    _raise_on_error(result, action="save the story text")


async def update_metadata(
    client: BaasClient,
    *,
    session: Session,
    story: Story,
    title: str,
    description: str | None,
    tags: Sequence[str],
) -> None:
    result = await client.execute(
        table("stories")
        .update({"title": title, "description": description, "tags": list(tags)})
        .eq("id", story.story_id)
        .eq("user_id", session.user_id),
        access_token=session.access_token,
    )
    _raise_on_error(result, action="update the story")
