"""Core Inkora domain models."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

STORY_CONTENT_TYPE = "hekayə"
POEM_CONTENT_TYPE = "şeir"


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class Profile:
    """Public author profile attached to comments and sessions."""

    first_name: str = ""
    last_name: str = ""
    username: str = ""
    avatar_url: str | None = None

    @property
    def display_name(self) -> str:
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.username

    @classmethod
    def from_row(cls, row: Mapping[str, Any] | None) -> Profile:
        if not row:
            return cls()
        return cls(
            first_name=str(row.get("first_name") or ""),
            last_name=str(row.get("last_name") or ""),
            username=str(row.get("username") or ""),
            avatar_url=_optional_str(row.get("avatar_url")),
        )


@dataclass(frozen=True)
class Story:
    """Story metadata as stored by the BaaS."""

    story_id: str
    owner_id: str
    title: str
    description: str | None = None
    cover_image_url: str | None = None
    tags: tuple[str, ...] = ()
    is_chapters: bool = False
    status: str = "draft"
    content_type: str = ""
    created_at: str = ""

    @property
    def is_poem(self) -> bool:
        return self.content_type == POEM_CONTENT_TYPE

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Story:
        raw_tags = row.get("tags") or ()
        return cls(
            story_id=str(row["id"]),
            owner_id=str(row["user_id"]),
            title=str(row.get("title") or ""),
            description=_optional_str(row.get("description")),
            cover_image_url=_optional_str(row.get("cover_image_url")),
            tags=tuple(str(tag) for tag in raw_tags),
            is_chapters=bool(row.get("is_chapters")),
            status=str(row.get("status") or "draft"),
            content_type=str(row.get("content_type") or ""),
            created_at=str(row.get("created_at") or ""),
        )


@dataclass(frozen=True)
class Chapter:
    """One ordered unit of a chaptered story."""

    chapter_id: str
    title: str
    chapter_number: int
    content: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Chapter:
        return cls(
            chapter_id=str(row["id"]),
            title=str(row.get("title") or ""),
            chapter_number=int(row.get("chapter_number") or 0),
            content=_optional_str(row.get("content")),
        )


@dataclass(frozen=True)
class Comment:
    """A comment with its denormalized author profile."""

    comment_id: str
    user_id: str
    content: str
    created_at: str
    author: Profile

    @classmethod
    def from_row(cls, row: Mapping[str, Any], *, fallback_author: Profile | None = None) -> Comment:
        embedded = row.get("profiles")
        author = Profile.from_row(embedded) if embedded else (fallback_author or Profile())
        return cls(
            comment_id=str(row["id"]),
            user_id=str(row["user_id"]),
            content=str(row.get("content") or ""),
            created_at=str(row.get("created_at") or ""),
            author=author,
        )


@dataclass(frozen=True)
class EngagementStats:
    """Derived view/like/comment counters."""

    views: int = 0
    likes: int = 0
    comments: int = 0

    def adjust(self, *, likes: int = 0, comments: int = 0) -> EngagementStats:
        return replace(self, likes=self.likes + likes, comments=self.comments + comments)


@dataclass(frozen=True)
class Session:
    """Authenticated viewer resolved from a BaaS access token."""

    user_id: str
    email: str
    access_token: str
    profile: Profile = field(default_factory=Profile)
