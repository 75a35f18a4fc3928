"""URL paths for page-to-page navigation."""

from __future__ import annotations

from inkora.domain.models import Story

HOME_PATH = "/"
WRITE_PATH = "/write"
AUTH_PATH = "/auth"
PROFILE_PATH = "/profile"


def story_path(story_id: str) -> str:
    return f"/story/{story_id}"


def story_editor_path(story: Story) -> str:
    """Chaptered stories edit metadata; single stories edit their body."""
    if story.is_chapters:
        return f"/story/{story.story_id}/edit-metadata"
    return f"/story/{story.story_id}/edit"


def story_writer_path(story_id: str) -> str:
    return f"/story/{story_id}/write"


def story_reader_path(story_id: str) -> str:
    return f"/story/{story_id}/read"


def chapter_reader_path(story_id: str, chapter_id: str) -> str:
    return f"/story/{story_id}/chapter/{chapter_id}"
