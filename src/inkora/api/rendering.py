"""Server-side HTML rendering for Inkora pages.

Every dynamic value goes through `escape`; the markup is intentionally small
and class names are left for the stylesheet to target.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from html import escape
from urllib.parse import urlencode

from inkora.api.contracts import CONTENT_TYPE_LABELS
from inkora.application.header import (
    MOBILE_SEARCH_PLACEHOLDER,
    SEARCH_PLACEHOLDER,
    SIGN_OUT_PATH,
    HeaderState,
)
from inkora.application.navigation import (
    AUTH_PATH,
    PROFILE_PATH,
    WRITE_PATH,
    chapter_reader_path,
    story_path,
)
from inkora.application.notifications import Notice
from inkora.application.readers import ChapterReading, StoryReading
from inkora.application.story_detail import StoryDetailPage
from inkora.domain.models import Chapter, Comment, Session, Story

SITE_NAME = "Inkora"
DEFAULT_AVATAR_URL = "https://api.dicebear.com/7.x/avataaars/svg?seed=user"


def format_comment_date(value: str) -> str:
    """Render an ISO timestamp as `dd.mm.YYYY`; unknown formats pass through."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%d.%m.%Y")


def render_notices(notices: Sequence[Notice]) -> str:
    if not notices:
        return ""
    items = "\n".join(
        f'<li class="toast toast-{escape(notice.level)}" role="status">'
        f"{escape(notice.message)}</li>"
        for notice in notices
    )
    return f'<ul class="toaster">\n{items}\n</ul>'


def render_header(header: HeaderState, session: Session | None) -> str:
    avatar_url = DEFAULT_AVATAR_URL
    initial = "U"
    if session is not None:
        avatar_url = session.profile.avatar_url or DEFAULT_AVATAR_URL
        name = session.profile.display_name or session.email
        initial = name[:1].upper() or "U"

    menu_lines: list[str] = []
    for item in header.menu:
        if item.separator_before:
            menu_lines.append('<li class="separator" role="separator"></li>')
        classes = ["menu-item"]
        if item.emphasis:
            classes.append("menu-item-primary")
        if item.destructive:
            classes.append("menu-item-destructive")
        class_attr = " ".join(classes)
        if item.path == SIGN_OUT_PATH:
            if session is None:
                continue
            menu_lines.append(
                f'<li><form method="post" action="{escape(item.path)}">'
                f'<button type="submit" class="{class_attr}">{escape(item.label)}</button>'
                "</form></li>"
            )
            continue
        menu_lines.append(
            f'<li><a class="{class_attr}" href="{escape(item.path)}">{escape(item.label)}</a></li>'
        )
    if session is None:
        menu_lines.append(f'<li><a class="menu-item" href="{AUTH_PATH}">Sign in</a></li>')

    query = escape(header.search_query)
    return f"""<header class="site-header">
  <a class="brand" href="{escape(header.home_path)}">
    <img src="/static/inkora-logo.png" alt="{SITE_NAME} Logo" width="40" height="40">
    <span class="brand-name">{SITE_NAME}</span>
  </a>
  <form class="search search-wide" role="search" method="get">
    <input type="search" name="q" value="{query}" placeholder="{escape(SEARCH_PLACEHOLDER)}">
  </form>
  <details class="profile-menu">
    <summary>
      <img class="avatar" src="{escape(avatar_url)}" alt="User" width="48" height="48">
      <span class="avatar-fallback">{escape(initial)}</span>
    </summary>
    <ul class="menu">
      {"".join(menu_lines)}
    </ul>
  </details>
  <form class="search search-mobile" role="search" method="get">
    <input type="search" name="q" value="{query}" placeholder="{escape(MOBILE_SEARCH_PLACEHOLDER)}">
  </form>
</header>"""


def render_document(
    *,
    title: str,
    header: HeaderState,
    session: Session | None,
    body: str,
    notices: Sequence[Notice] = (),
) -> str:
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{escape(title)} | {SITE_NAME}</title>
</head>
<body>
{render_header(header, session)}
{render_notices(notices)}
<main class="container">
{body}
</main>
</body>
</html>
"""


def _story_card(story: Story) -> str:
    description = (
        f'<p class="muted">{escape(story.description)}</p>' if story.description else ""
    )
    kind = "Chapters" if story.is_chapters else CONTENT_TYPE_LABELS.get(story.content_type, "Story")
    return (
        f'<li class="card story-card"><a href="{escape(story_path(story.story_id))}">'
        f"<h3>{escape(story.title)}</h3></a>"
        f'<span class="badge">{escape(kind)}</span>{description}</li>'
    )


def render_story_list(stories: Sequence[Story], *, heading: str, empty_text: str) -> str:
    if not stories:
        return f'<h1>{escape(heading)}</h1>\n<p class="muted">{escape(empty_text)}</p>'
    cards = "\n".join(_story_card(story) for story in stories)
    return f'<h1>{escape(heading)}</h1>\n<ul class="story-grid">\n{cards}\n</ul>'


def render_profile(session: Session, stories: Sequence[Story]) -> str:
    profile = session.profile
    name = profile.display_name or session.email
    username = f'<p class="muted">@{escape(profile.username)}</p>' if profile.username else ""
    listing = render_story_list(
        stories,
        heading="My stories",
        empty_text="You have not written anything yet.",
    )
    return (
        f'<section class="profile"><h2>{escape(name)}</h2>{username}'
        f'<a class="button" href="{WRITE_PATH}">Write</a></section>\n{listing}'
    )


def render_auth_page() -> str:
    return """<section class="auth">
  <h1>Sign in</h1>
  <form method="post" action="/auth/login">
    <input type="email" name="email" placeholder="Email" required>
    <input type="password" name="password" placeholder="Password" required>
    <button type="submit">Sign in</button>
  </form>
  <h2>Create an account</h2>
  <form method="post" action="/auth/register">
    <input type="text" name="first_name" placeholder="First name" required>
    <input type="text" name="last_name" placeholder="Last name" required>
    <input type="text" name="username" placeholder="Username" required>
    <input type="email" name="email" placeholder="Email" required>
    <input type="password" name="password" placeholder="Password" minlength="8" required>
    <button type="submit">Sign up</button>
  </form>
</section>"""


def render_write_page() -> str:
    options = "".join(
        f'<option value="{escape(value)}">{escape(label)}</option>'
        for value, label in CONTENT_TYPE_LABELS.items()
    )
    return f"""<section class="write">
  <h1>New story</h1>
  <form method="post" action="{WRITE_PATH}">
    <input type="text" name="title" placeholder="Title" required>
    <textarea name="description" placeholder="Description"></textarea>
    <input type="text" name="tags" placeholder="Tags, separated by commas">
    <select name="content_type">{options}</select>
    <label><input type="checkbox" name="is_chapters"> Write in chapters</label>
    <button type="submit">Create</button>
  </form>
</section>"""


def _detail_link(
    page: StoryDetailPage, *, show_comments: bool, page_number: int | None = None
) -> str:
    params: dict[str, str] = {"comments": "1" if show_comments else "0"}
    if page_number is not None:
        params["page"] = str(page_number)
    return f"{story_path(page.story_id)}?{urlencode(params)}"


def _render_comment(comment: Comment) -> str:
    author = comment.author
    return f"""<li class="card comment">
  <p class="comment-author">{escape(f"{author.first_name} {author.last_name}".strip())}</p>
  <p class="muted">@{escape(author.username)}</p>
  <p class="comment-body">{escape(comment.content)}</p>
  <p class="muted small">{escape(format_comment_date(comment.created_at))}</p>
</li>"""


def _render_comment_section(page: StoryDetailPage) -> str:
    state = page.state
    window = page.comment_window
    comments = "\n".join(_render_comment(comment) for comment in window.items)
    pager = ""
    if window.show_controls:
        if window.has_previous:
            previous = (
                f'<a class="button outline" href="'
                f'{escape(_detail_link(page, show_comments=True, page_number=window.page - 1))}">'
                "Previous</a>"
            )
        else:
            previous = '<span class="button outline" aria-disabled="true">Previous</span>'
        if window.has_next:
            following = (
                f'<a class="button outline" href="'
                f'{escape(_detail_link(page, show_comments=True, page_number=window.page + 1))}">'
                "Next</a>"
            )
        else:
            following = '<span class="button outline" aria-disabled="true">Next</span>'
        pager = (
            f'<nav class="pager">{previous}'
            f'<span class="pager-status">{window.page} / {window.page_count}</span>'
            f"{following}</nav>"
        )
    return f"""<hr>
<section class="comments">
  <h3>{escape(page.comments_heading)}</h3>
  <form method="post" action="{escape(story_path(page.story_id))}/comments">
    <input type="hidden" name="page" value="{window.page}">
    <textarea name="content" placeholder="Write a comment...">{escape(state.comment_draft)}</textarea>
    <button type="submit">Add comment</button>
  </form>
  <ul class="comment-list">
{comments}
  </ul>
  {pager}
</section>"""


def _render_chapter_card(page: StoryDetailPage, chapter: Chapter) -> str:
    return (
        f'<li class="card chapter-card"><a href="{escape(page.chapter_path(chapter))}">'
        f"Chapter {chapter.chapter_number}: {escape(chapter.title)}</a></li>"
    )


def _render_stats(page: StoryDetailPage, story: Story) -> str:
    state = page.state
    features = page.features
    parts: list[str] = []
    if features.stats:
        parts.append(f'<span class="stat stat-views">Views {state.stats.views}</span>')
    if features.likes and not story.is_chapters:
        liked_class = " liked" if state.is_liked else ""
        parts.append(
            f'<form method="post" action="{escape(story_path(story.story_id))}/like">'
            f'<button type="submit" class="stat stat-likes{liked_class}" '
            f'aria-pressed="{"true" if state.is_liked else "false"}">'
            f"Likes {state.stats.likes}</button></form>"
        )
    elif features.stats:
        parts.append(f'<span class="stat stat-likes">Likes {state.stats.likes}</span>')
    if features.comments:
        toggle = _detail_link(page, show_comments=not state.show_comments)
        parts.append(
            f'<a class="stat stat-comments" href="{escape(toggle)}">'
            f"Comments {state.stats.comments}</a>"
        )
    if not parts:
        return ""
    return f'<div class="stats">{"".join(parts)}</div>'


def render_story_detail(page: StoryDetailPage) -> str:
    state = page.state
    story = state.story
    if story is None:
        return '<p class="muted center">Story not found</p>'

    owner_action = ""
    action_path = page.owner_action_path
    if action_path is not None:
        label = "Start writing" if page.features.owner_action == "start_writing" else "Edit"
        owner_action = f'<a class="button float-right" href="{escape(action_path)}">{label}</a>'

    cover = ""
    if story.cover_image_url:
        cover = (
            f'<div class="cover"><img src="{escape(story.cover_image_url)}" '
            f'alt="{escape(story.title)}"></div>'
        )
    description = (
        f'<p class="muted">{escape(story.description)}</p>' if story.description else ""
    )
    tags = ""
    if story.tags:
        badges = "".join(f'<span class="badge">#{escape(tag)}</span>' for tag in story.tags)
        tags = f'<div class="tags">{badges}</div>'

    sections: list[str] = []
    if page.features.comments and state.show_comments:
        sections.append(_render_comment_section(page))
    if page.content_section == "excerpt":
        sections.append(
            f"""<hr>
<section class="excerpt">
  <h3>{escape(page.content_heading)}</h3>
  <div class="prose"><p class="pre-wrap">{escape(state.single_story_content or "")}</p></div>
  <a class="button" href="{escape(page.reader_path)}">Read all</a>
</section>"""
        )
    elif page.content_section == "chapters":
        cards = "\n".join(_render_chapter_card(page, chapter) for chapter in state.chapters)
        sections.append(
            f'<hr>\n<section class="chapters"><h3>Chapters</h3>\n<ul class="chapter-list">\n'
            f"{cards}\n</ul></section>"
        )

    return f"""<a class="button ghost" href="{PROFILE_PATH}">Back to profile</a>
{owner_action}
<article class="card story-detail">
  <div class="story-head">
    {cover}
    <div class="story-meta">
      <h1>{escape(story.title)}</h1>
      {description}
      {tags}
      {_render_stats(page, story)}
    </div>
  </div>
  {"".join(sections)}
</article>"""


def render_story_reader(reading: StoryReading) -> str:
    story = reading.story
    return f"""<a class="button ghost" href="{escape(story_path(story.story_id))}">Back to story</a>
<article class="reader">
  <h1>{escape(story.title)}</h1>
  <div class="prose"><p class="pre-wrap">{escape(reading.content)}</p></div>
</article>"""


def render_chapter_reader(reading: ChapterReading) -> str:
    story = reading.story
    chapter = reading.chapter
    links: list[str] = []
    if reading.previous is not None:
        links.append(
            f'<a class="button outline" href="'
            f'{escape(chapter_reader_path(story.story_id, reading.previous.chapter_id))}">'
            "Previous chapter</a>"
        )
    if reading.next is not None:
        links.append(
            f'<a class="button outline" href="'
            f'{escape(chapter_reader_path(story.story_id, reading.next.chapter_id))}">'
            "Next chapter</a>"
        )
    return f"""<a class="button ghost" href="{escape(story_path(story.story_id))}">{escape(story.title)}</a>
<article class="reader">
  <h1>Chapter {chapter.chapter_number}: {escape(chapter.title)}</h1>
  <div class="prose"><p class="pre-wrap">{escape(chapter.content or "")}</p></div>
</article>
<nav class="pager">{"".join(links)}</nav>"""


def render_chapter_writer(story: Story, chapters: Sequence[Chapter]) -> str:
    existing = "\n".join(
        f"<li>Chapter {chapter.chapter_number}: {escape(chapter.title)}</li>" for chapter in chapters
    )
    return f"""<a class="button ghost" href="{escape(story_path(story.story_id))}">Back to story</a>
<section class="editor">
  <h1>{escape(story.title)}</h1>
  <ol class="chapter-list">
{existing}
  </ol>
  <form method="post" action="/story/{escape(story.story_id)}/write">
    <input type="text" name="title" placeholder="Chapter title" required>
    <textarea name="content" placeholder="Chapter text" required></textarea>
    <button type="submit">Add chapter</button>
  </form>
</section>"""


def render_single_writer(story: Story, content: str) -> str:
    return f"""<a class="button ghost" href="{escape(story_path(story.story_id))}">Back to story</a>
<section class="editor">
  <h1>{escape(story.title)}</h1>
  <form method="post" action="/story/{escape(story.story_id)}/write">
    <textarea name="content" placeholder="Text">{escape(content)}</textarea>
    <button type="submit">Save</button>
  </form>
</section>"""


def render_metadata_editor(story: Story) -> str:
    return f"""<a class="button ghost" href="{escape(story_path(story.story_id))}">Back to story</a>
<section class="editor">
  <h1>Edit story</h1>
  <form method="post" action="/story/{escape(story.story_id)}/edit-metadata">
    <input type="text" name="title" value="{escape(story.title)}" required>
    <textarea name="description">{escape(story.description or "")}</textarea>
    <input type="text" name="tags" value="{escape(", ".join(story.tags))}">
    <button type="submit">Save</button>
  </form>
</section>"""


def render_not_found(path: str) -> str:
    return f"""<section class="not-found center">
  <h1>404</h1>
  <p class="muted">Page not found: {escape(path)}</p>
  <a class="button" href="/">Return to home</a>
</section>"""
