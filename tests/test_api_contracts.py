from __future__ import annotations

import pytest
from pydantic import ValidationError

from inkora.api.contracts import (
    MAX_TAGS,
    AuthLoginRequest,
    AuthRegisterRequest,
    CommentCreateRequest,
    StoryCreateRequest,
    StoryMetadataRequest,
)


def test_story_metadata_splits_and_dedupes_tags() -> None:
    request = StoryMetadataRequest.model_validate(
        {"title": "  Tides  ", "description": "   ", "tags": "Sea, #sea, , #Moon ,moon"}
    )

    assert request.title == "Tides"
    assert request.description is None
    assert request.tags == ["sea", "moon"]


def test_story_metadata_rejects_too_many_tags_and_extra_fields() -> None:
    with pytest.raises(ValidationError, match="at most"):
        StoryMetadataRequest.model_validate(
            {"title": "T", "tags": ",".join(f"tag{index}" for index in range(MAX_TAGS + 1))}
        )
    with pytest.raises(ValidationError):
        StoryMetadataRequest.model_validate({"title": "T", "owner": "someone"})


def test_story_create_accepts_checkbox_and_known_content_types() -> None:
    chaptered = StoryCreateRequest.model_validate(
        {"title": "T", "is_chapters": "on", "content_type": "şeir"}
    )
    default = StoryCreateRequest.model_validate({"title": "T"})

    assert chaptered.is_chapters is True
    assert chaptered.content_type == "şeir"
    assert default.is_chapters is False
    assert default.content_type == "hekayə"
    with pytest.raises(ValidationError):
        StoryCreateRequest.model_validate({"title": "T", "content_type": "novel"})


def test_register_normalizes_email_and_username() -> None:
    request = AuthRegisterRequest.model_validate(
        {
            "email": " Nora@Example.com ",
            "password": "password123",
            "first_name": "Nora",
            "last_name": "Writer",
            "username": "Nora_W",
        }
    )

    assert request.email == "nora@example.com"
    assert request.username == "nora_w"
    assert request.password.get_secret_value() == "password123"
    assert "password123" not in repr(request)


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("email", "nora.example.com"),
        ("username", "no"),
        ("username", "bad name"),
        ("password", "short"),
    ],
)
def test_register_rejects_invalid_fields(field: str, value: str) -> None:
    payload = {
        "email": "nora@example.com",
        "password": "password123",
        "first_name": "Nora",
        "last_name": "Writer",
        "username": "nora",
    }
    payload[field] = value
    with pytest.raises(ValidationError):
        AuthRegisterRequest.model_validate(payload)


def test_login_lowercases_email() -> None:
    request = AuthLoginRequest.model_validate({"email": "NORA@example.com", "password": "x"})
    assert request.email == "nora@example.com"


def test_comment_keeps_whitespace_and_caps_length() -> None:
    assert CommentCreateRequest.model_validate({"content": "  hi  "}).content == "  hi  "
    assert CommentCreateRequest.model_validate({}).content == ""
    with pytest.raises(ValidationError):
        CommentCreateRequest.model_validate({"content": "x" * 5001})
