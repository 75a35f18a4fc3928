"""Story detail page: story resolution, engagement stats, likes, and comments.

The page is one async pipeline per load:

1. resolve the story (short-circuits with a redirect when it is missing),
2. record a view for signed-in visitors,
3. fetch mode-dependent data and story comments concurrently.

User actions (like, comment, paging) update the local view state in place
instead of reloading the page.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Literal, TypeVar

from inkora.application.navigation import (
    PROFILE_PATH,
    chapter_reader_path,
    story_editor_path,
    story_reader_path,
    story_writer_path,
)
from inkora.application.pagination import COMMENTS_PER_PAGE, PageWindow, paginate
from inkora.domain.models import Chapter, Comment, EngagementStats, Session, Story
from inkora.domain.ports import BaasClient, Notifier
from inkora.domain.query import BaasResult, Query, table

OwnerAction = Literal["edit", "start_writing"]
ContentSection = Literal["excerpt", "chapters"]
T = TypeVar("T")

COMMENT_COLUMNS = "*, profiles (first_name, last_name, username, avatar_url)"

STORY_NOT_FOUND = "Story not found"
SIGN_IN_TO_LIKE = "Sign in to like stories"
LIKE_CHAPTERS_INSTEAD = "You can like individual chapters"
LIKE_FAILED = "Could not update the like"
SIGN_IN_TO_COMMENT = "Sign in to comment"
COMMENT_FAILED = "Could not add the comment"
COMMENT_ADDED = "Comment added"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoryDetailFeatures:
    """Optional sections of the story detail page."""

    stats: bool = True
    likes: bool = True
    comments: bool = True
    content: bool = True
    owner_action: OwnerAction = "edit"


FULL_FEATURES = StoryDetailFeatures()
BASIC_FEATURES = StoryDetailFeatures(
    stats=False,
    likes=False,
    comments=False,
    content=False,
    owner_action="start_writing",
)
FEATURE_PRESETS: dict[str, StoryDetailFeatures] = {
    "full": FULL_FEATURES,
    "basic": BASIC_FEATURES,
}


@dataclass
class StoryDetailState:
    """Local mirror of the remote state shown on the page."""

    loading: bool = True
    story: Story | None = None
    is_owner: bool = False
    chapters: list[Chapter] = field(default_factory=list)
    stats: EngagementStats = field(default_factory=EngagementStats)
    is_liked: bool = False
    comments: list[Comment] = field(default_factory=list)
    comment_draft: str = ""
    show_comments: bool = False
    current_page: int = 1
    single_story_content: str | None = None
    redirect_to: str | None = None


@dataclass(frozen=True)
class _ModeData:
    chapters: list[Chapter] = field(default_factory=list)
    stats: EngagementStats = field(default_factory=EngagementStats)
    is_liked: bool = False
    single_story_content: str | None = None


class StoryDetailPage:
    """Controller for one story detail page instance."""

    def __init__(
        self,
        *,
        client: BaasClient,
        notifier: Notifier,
        story_id: str,
        session: Session | None = None,
        features: StoryDetailFeatures = FULL_FEATURES,
    ) -> None:
        self._client = client
        self._notifier = notifier
        self._story_id = story_id
        self._session = session
        self._features = features
        self._generation = 0
        self.state = StoryDetailState()

    @property
    def story_id(self) -> str:
        return self._story_id

    @property
    def features(self) -> StoryDetailFeatures:
        return self._features

    @property
    def session(self) -> Session | None:
        return self._session

    async def _run(self, query: Query) -> BaasResult:
        token = self._session.access_token if self._session is not None else None
        return await self._client.execute(query, access_token=token)

    async def load(self, *, record_view: bool = True) -> StoryDetailState:
        """Fetch everything the page shows; a newer load supersedes older ones.

        Pass `record_view=False` when the load backs a like or comment action
        rather than a visit.
        """
        self._generation += 1
        generation = self._generation
        logger.debug("story_detail.load story_id=%s generation=%s", self._story_id, generation)

        story = await self._resolve_story()
        if generation != self._generation:
            return self.state
        if story is None:
            self._notifier.error(STORY_NOT_FOUND)
            self.state.redirect_to = PROFILE_PATH
            self.state.loading = False
            return self.state

        if record_view:
            await self._record_view()

        mode_data, comments = await asyncio.gather(
            self._load_mode_data(story),
            self._load_comments(),
        )
        if generation != self._generation:
            logger.debug("story_detail.stale_load_dropped generation=%s", generation)
            return self.state

        self.state.story = story
        self.state.is_owner = self._session is not None and self._session.user_id == story.owner_id
        self.state.chapters = mode_data.chapters
        self.state.stats = mode_data.stats
        self.state.is_liked = mode_data.is_liked
        self.state.single_story_content = mode_data.single_story_content
        self.state.comments = comments
        self.state.redirect_to = None
        self.state.loading = False
        return self.state

    async def _resolve_story(self) -> Story | None:
        result = await self._run(table("stories").select("*").eq("id", self._story_id).single())
        if not result.ok or not result.data:
            if result.error is not None:
                logger.info(
                    "story_detail.not_found story_id=%s code=%s",
                    self._story_id,
                    result.error.code,
                )
            return None
        return Story.from_row(result.data)

    async def _record_view(self) -> None:
        if self._session is None:
            return
        result = await self._run(
            table("story_views").insert(
                {"story_id": self._story_id, "user_id": self._session.user_id}
            )
        )
        if not result.ok and result.error is not None:
            logger.debug("story_detail.view_not_recorded message=%s", result.error.message)

    async def _load_mode_data(self, story: Story) -> _ModeData:
        if story.is_chapters:
            return await self._load_chaptered(story)
        return await self._load_single(story)

    async def _load_chaptered(self, story: Story) -> _ModeData:
        if not (self._features.stats or self._features.content):
            return _ModeData()
        result = await self._run(
            table("chapters")
            .select("id, title, chapter_number")
            .eq("story_id", story.story_id)
            .order("chapter_number", ascending=True)
        )
        self._log_failure("chapters", result)
        chapters = [Chapter.from_row(row) for row in result.rows()]
        stats = EngagementStats()
        if self._features.stats and chapters:
            chapter_ids = [chapter.chapter_id for chapter in chapters]
            views, likes, comments = await asyncio.gather(
                self._count(table("chapter_views").in_("chapter_id", chapter_ids)),
                self._count(table("chapter_likes").in_("chapter_id", chapter_ids)),
                self._count(table("chapter_comments").in_("chapter_id", chapter_ids)),
            )
            stats = EngagementStats(views=views, likes=likes, comments=comments)
        return _ModeData(
            chapters=chapters if self._features.content else [],
            stats=stats,
        )

    async def _load_single(self, story: Story) -> _ModeData:
        stats_task = self._single_stats(story) if self._features.stats else _constant(EngagementStats())
        liked_task = self._liked(story) if self._features.likes else _constant(False)
        content_task = self._single_content(story) if self._features.content else _constant(None)
        stats, is_liked, content = await asyncio.gather(stats_task, liked_task, content_task)
        return _ModeData(stats=stats, is_liked=is_liked, single_story_content=content)

    async def _single_stats(self, story: Story) -> EngagementStats:
        views, likes, comments = await asyncio.gather(
            self._count(table("story_views").eq("story_id", story.story_id)),
            self._count(table("story_likes").eq("story_id", story.story_id)),
            self._count(table("story_comments").eq("story_id", story.story_id)),
        )
        return EngagementStats(views=views, likes=likes, comments=comments)

    async def _liked(self, story: Story) -> bool:
        if self._session is None:
            return False
        result = await self._run(
            table("story_likes")
            .select("*")
            .eq("story_id", story.story_id)
            .eq("user_id", self._session.user_id)
            .maybe_single()
        )
        self._log_failure("story_likes", result)
        return result.ok and bool(result.data)

    async def _single_content(self, story: Story) -> str | None:
        result = await self._run(
            table("single_stories").select("content").eq("story_id", story.story_id).maybe_single()
        )
        self._log_failure("single_stories", result)
        if not result.ok or not result.data:
            return None
        content = result.data.get("content")
        return None if content is None else str(content)

    async def _load_comments(self) -> list[Comment]:
        if not self._features.comments:
            return []
        result = await self._run(
            table("story_comments")
            .select(COMMENT_COLUMNS)
            .eq("story_id", self._story_id)
            .order("created_at", ascending=False)
        )
        self._log_failure("story_comments", result)
        return [Comment.from_row(row) for row in result.rows()]

    async def _count(self, query: Query) -> int:
        result = await self._run(query.count())
        if not result.ok:
            self._log_failure(query.table, result)
            return 0
        return result.count or 0

    def _log_failure(self, source: str, result: BaasResult) -> None:
        if result.error is not None:
            logger.warning(
                "story_detail.fetch_failed story_id=%s source=%s message=%s",
                self._story_id,
                source,
                result.error.message,
            )

    async def toggle_like(self) -> None:
        story = self.state.story
        if story is None or not self._features.likes:
            return
        if self._session is None:
            self._notifier.error(SIGN_IN_TO_LIKE)
            return
        if story.is_chapters:
            self._notifier.info(LIKE_CHAPTERS_INSTEAD)
            return

        likes = table("story_likes")
        if self.state.is_liked:
            result = await self._run(
                likes.delete().eq("story_id", story.story_id).eq("user_id", self._session.user_id)
            )
            delta = -1
        else:
            result = await self._run(
                likes.insert({"story_id": story.story_id, "user_id": self._session.user_id})
            )
            delta = 1
        if not result.ok:
            self._log_failure("story_likes", result)
            self._notifier.error(LIKE_FAILED)
            return
        self.state.is_liked = not self.state.is_liked
        self.state.stats = self.state.stats.adjust(likes=delta)

    def set_comment_draft(self, text: str) -> None:
        self.state.comment_draft = text

    async def submit_comment(self, text: str | None = None) -> bool:
        """Post the draft as a story comment; returns True when it was added."""
        if text is not None:
            self.state.comment_draft = text
        draft = self.state.comment_draft
        story = self.state.story
        if not draft.strip() or story is None or not self._features.comments:
            return False
        if self._session is None:
            self._notifier.error(SIGN_IN_TO_COMMENT)
            return False

        result = await self._run(
            table("story_comments")
            .insert({"story_id": story.story_id, "user_id": self._session.user_id, "content": draft})
            .returning_columns(COMMENT_COLUMNS)
        )
        rows = result.rows()
        if not result.ok or not rows:
            self._log_failure("story_comments", result)
            self._notifier.error(COMMENT_FAILED)
            return False

        comment = Comment.from_row(rows[0], fallback_author=self._session.profile)
        self.state.comments = [comment, *self.state.comments]
        self.state.current_page = 1
        if not story.is_chapters:
            self.state.stats = self.state.stats.adjust(comments=1)
        self.state.comment_draft = ""
        self._notifier.success(COMMENT_ADDED)
        return True

    def toggle_comments(self) -> None:
        self.state.show_comments = not self.state.show_comments

    def go_to_page(self, page: int) -> None:
        self.state.current_page = self.comment_window_for(page).page

    def next_page(self) -> None:
        self.go_to_page(self.state.current_page + 1)

    def previous_page(self) -> None:
        self.go_to_page(self.state.current_page - 1)

    def comment_window_for(self, page: int) -> PageWindow[Comment]:
        return paginate(self.state.comments, page, COMMENTS_PER_PAGE)

    @property
    def comment_window(self) -> PageWindow[Comment]:
        return self.comment_window_for(self.state.current_page)

    @property
    def content_section(self) -> ContentSection | None:
        story = self.state.story
        if story is None or not self._features.content:
            return None
        if not story.is_chapters:
            content = self.state.single_story_content
            return "excerpt" if content and content.strip() else None
        return "chapters" if self.state.chapters else None

    @property
    def owner_action_path(self) -> str | None:
        story = self.state.story
        if story is None or not self.state.is_owner:
            return None
        if self._features.owner_action == "start_writing":
            return story_writer_path(story.story_id)
        return story_editor_path(story)

    @property
    def reader_path(self) -> str:
        return story_reader_path(self._story_id)

    def chapter_path(self, chapter: Chapter) -> str:
        return chapter_reader_path(self._story_id, chapter.chapter_id)

    @property
    def comments_heading(self) -> str:
        story = self.state.story
        if story is not None and story.is_chapters:
            return "Comments about the story"
        return "Comments"

    @property
    def content_heading(self) -> str:
        story = self.state.story
        if story is not None and story.is_poem:
            return "Poem"
        return "Story"


async def _constant(value: T) -> T:
    return value
