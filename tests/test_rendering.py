from __future__ import annotations

from pathlib import Path

from inkora.adapters.sqlite_baas import SQLiteBaas
from inkora.api.rendering import (
    format_comment_date,
    render_header,
    render_not_found,
    render_notices,
    render_story_detail,
)
from inkora.application.header import HeaderState
from inkora.application.notifications import Notice, NotificationCenter
from inkora.application.story_detail import (
    BASIC_FEATURES,
    StoryDetailFeatures,
    StoryDetailPage,
)
from inkora.domain.models import (
    POEM_CONTENT_TYPE,
    Chapter,
    Comment,
    EngagementStats,
    Profile,
    Session,
    Story,
)


def _page(
    tmp_path: Path, story: Story, *, features: StoryDetailFeatures | None = None
) -> StoryDetailPage:
    page = StoryDetailPage(
        client=SQLiteBaas(tmp_path / "inkora.db"),
        notifier=NotificationCenter(),
        story_id=story.story_id,
        features=features or StoryDetailFeatures(),
    )
    page.state.story = story
    page.state.loading = False
    return page


def _comments(count: int) -> list[Comment]:
    author = Profile(first_name="Ada", last_name="Reed", username="ada")
    return [
        Comment(
            comment_id=f"c{index}",
            user_id="u2",
            content=f"comment {index}",
            created_at="2024-03-05T10:00:00+00:00",
            author=author,
        )
        for index in range(count)
    ]


def test_format_comment_date() -> None:
    assert format_comment_date("2024-03-05T10:00:00Z") == "05.03.2024"
    assert format_comment_date("2024-12-31T23:59:59.123456+00:00") == "31.12.2024"
    assert format_comment_date("yesterday") == "yesterday"


def test_render_notices_escapes_and_skips_empty() -> None:
    assert render_notices([]) == ""
    markup = render_notices([Notice(level="error", message="<oops>")])
    assert 'class="toast toast-error"' in markup
    assert "&lt;oops&gt;" in markup


def test_header_menu_depends_on_session() -> None:
    header = HeaderState()
    header.update_search('"tide"')
    anonymous = render_header(header, None)
    session = Session(
        user_id="u1",
        email="nora@example.com",
        access_token="token",
        profile=Profile(first_name="nora", username="nora"),
    )
    signed_in = render_header(header, session)

    assert 'value="&quot;tide&quot;"' in anonymous
    assert 'href="/auth">Sign in' in anonymous
    assert "Sign out" not in anonymous
    assert 'action="/auth/logout"' in signed_in
    assert 'href="/auth">Sign in' not in signed_in
    assert '<span class="avatar-fallback">N</span>' in signed_in


def test_story_detail_pager_states(tmp_path: Path) -> None:
    page = _page(tmp_path, Story(story_id="s1", owner_id="u1", title="Tides"))
    page.state.comments = _comments(25)
    page.state.show_comments = True

    first = render_story_detail(page)
    assert '<span class="button outline" aria-disabled="true">Previous</span>' in first
    assert 'href="/story/s1?comments=1&amp;page=2">Next</a>' in first
    assert "1 / 3" in first
    assert "comment 9" in first and "comment 10" not in first

    page.go_to_page(3)
    last = render_story_detail(page)
    assert '<span class="button outline" aria-disabled="true">Next</span>' in last
    assert "3 / 3" in last
    assert "comment 24" in last


def test_story_detail_hides_pager_for_a_single_page(tmp_path: Path) -> None:
    page = _page(tmp_path, Story(story_id="s1", owner_id="u1", title="Tides"))
    page.state.comments = _comments(10)
    page.state.show_comments = True

    markup = render_story_detail(page)

    assert 'class="pager"' not in markup
    assert "05.03.2024" in markup
    assert 'href="/story/s1?comments=0">Comments 0</a>' in markup


def test_story_detail_poem_excerpt_and_chapter_list(tmp_path: Path) -> None:
    poem = _page(
        tmp_path,
        Story(story_id="p1", owner_id="u1", title="Moon", content_type=POEM_CONTENT_TYPE),
    )
    poem.state.single_story_content = "Silver <line>"
    poem.state.stats = EngagementStats(views=3, likes=2, comments=1)
    chaptered = _page(
        tmp_path, Story(story_id="c1", owner_id="u1", title="Saga", is_chapters=True)
    )
    chaptered.state.chapters = [Chapter(chapter_id="ch1", title="Dawn", chapter_number=1)]

    poem_markup = render_story_detail(poem)
    chapter_markup = render_story_detail(chaptered)

    assert "<h3>Poem</h3>" in poem_markup
    assert "Silver &lt;line&gt;" in poem_markup
    assert 'href="/story/p1/read">Read all' in poem_markup
    assert 'aria-pressed="false">Likes 2</button>' in poem_markup
    assert 'href="/story/c1/chapter/ch1">Chapter 1: Dawn</a>' in chapter_markup
    assert '<span class="stat stat-likes">Likes 0</span>' in chapter_markup
    assert "Read all" not in chapter_markup


def test_basic_features_render_title_only(tmp_path: Path) -> None:
    page = _page(
        tmp_path,
        Story(story_id="s1", owner_id="u1", title="Tides", tags=("sea",)),
        features=BASIC_FEATURES,
    )
    page.state.is_owner = True
    page.state.single_story_content = "Body"

    markup = render_story_detail(page)

    assert 'href="/story/s1/write">Start writing</a>' in markup
    assert "#sea" in markup
    assert 'class="stats"' not in markup
    assert "Read all" not in markup


def test_missing_story_and_not_found_page(tmp_path: Path) -> None:
    page = StoryDetailPage(
        client=SQLiteBaas(tmp_path / "inkora.db"),
        notifier=NotificationCenter(),
        story_id="nope",
    )

    assert "Story not found" in render_story_detail(page)
    assert "Page not found: /a&lt;b" in render_not_found("/a<b")
