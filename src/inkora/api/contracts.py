"""Typed form and JSON contracts for the Inkora web layer."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from inkora.domain.models import POEM_CONTENT_TYPE, STORY_CONTENT_TYPE

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USERNAME_PATTERN = re.compile(r"^[a-z0-9_.]{3,40}$")
CONTENT_TYPE_LABELS: dict[str, str] = {
    STORY_CONTENT_TYPE: "Story",
    POEM_CONTENT_TYPE: "Poem",
}
MAX_TAGS = 12


class ContractModel(BaseModel):
    """Base model config used by all web contracts."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


def _dedupe_tags(values: Iterable[str]) -> list[str]:
    tags: list[str] = []
    seen: set[str] = set()
    for value in values:
        normalized = value.strip().lstrip("#").strip().lower()
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        tags.append(normalized)
    return tags


def _split_tags(value: Any) -> Any:
    if isinstance(value, str):
        return value.split(",")
    return value


class AuthLoginRequest(ContractModel):
    email: str = Field(min_length=3, max_length=320)
    password: SecretStr = Field(min_length=1, max_length=256)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.lower()


class AuthRegisterRequest(ContractModel):
    """New account details; the profile row is created from the same form."""

    email: str = Field(min_length=3, max_length=320)
    password: SecretStr = Field(min_length=8, max_length=256)
    first_name: str = Field(min_length=1, max_length=80)
    last_name: str = Field(min_length=1, max_length=80)
    username: str = Field(min_length=3, max_length=40)

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        normalized = value.lower()
        if not EMAIL_PATTERN.match(normalized):
            raise ValueError("Enter a valid email address.")
        return normalized

    @field_validator("username")
    @classmethod
    def _validate_username(cls, value: str) -> str:
        normalized = value.lower()
        if not USERNAME_PATTERN.match(normalized):
            raise ValueError(
                "Username may contain lowercase letters, digits, dots and underscores."
            )
        return normalized


class StoryMetadataRequest(ContractModel):
    title: str = Field(min_length=1, max_length=300)
    description: str | None = Field(default=None, max_length=5000)
    tags: list[str] = Field(default_factory=list)

    @field_validator("description")
    @classmethod
    def _blank_description_is_none(cls, value: str | None) -> str | None:
        return value or None

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tag_text(cls, value: Any) -> Any:
        return _split_tags(value)

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, values: list[str]) -> list[str]:
        tags = _dedupe_tags(values)
        if len(tags) > MAX_TAGS:
            raise ValueError(f"Use at most {MAX_TAGS} tags.")
        return tags


class StoryCreateRequest(StoryMetadataRequest):
    is_chapters: bool = False
    content_type: Literal["hekayə", "şeir"] = STORY_CONTENT_TYPE


class ChapterCreateRequest(ContractModel):
    title: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1, max_length=200_000)


class SingleContentRequest(ContractModel):
    content: str = Field(default="", max_length=200_000)


class CommentCreateRequest(BaseModel):
    """Raw comment text; blank text is accepted and treated as a no-op."""

    model_config = ConfigDict(extra="forbid")

    content: str = Field(default="", max_length=5000)


class HealthResponse(ContractModel):
    status: Literal["ok"] = "ok"
    service: str = "inkora"


class NoticeResponse(ContractModel):
    level: Literal["error", "success", "info"]
    message: str


class StoryResponse(ContractModel):
    story_id: str
    owner_id: str
    title: str
    description: str | None
    cover_image_url: str | None
    tags: list[str]
    is_chapters: bool
    status: str
    content_type: str
    created_at: str


class ChapterResponse(ContractModel):
    chapter_id: str
    title: str
    chapter_number: int


class StatsResponse(ContractModel):
    views: int
    likes: int
    comments: int


class CommentAuthorResponse(ContractModel):
    first_name: str
    last_name: str
    username: str
    avatar_url: str | None


class CommentResponse(ContractModel):
    comment_id: str
    user_id: str
    content: str
    created_at: str
    author: CommentAuthorResponse


class CommentPageResponse(ContractModel):
    page: int
    page_count: int
    total: int
    has_previous: bool
    has_next: bool
    items: list[CommentResponse]


class StoryDetailResponse(ContractModel):
    story: StoryResponse
    is_owner: bool
    is_liked: bool
    stats: StatsResponse
    chapters: list[ChapterResponse]
    single_story_content: str | None
    content_section: Literal["excerpt", "chapters"] | None
    owner_action_path: str | None
    comments: CommentPageResponse
    notices: list[NoticeResponse] = Field(default_factory=list)
