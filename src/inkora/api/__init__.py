"""HTTP surface: the FastAPI app factory and its request/response contracts."""

from inkora.api.app import create_app
from inkora.api.contracts import (
    CommentCreateRequest,
    StoryCreateRequest,
    StoryDetailResponse,
    StoryMetadataRequest,
)

__all__ = [
    "CommentCreateRequest",
    "StoryCreateRequest",
    "StoryDetailResponse",
    "StoryMetadataRequest",
    "create_app",
]
