"""Domain models, query values, and ports for Inkora."""

from inkora.domain.models import (
    POEM_CONTENT_TYPE,
    STORY_CONTENT_TYPE,
    Chapter,
    Comment,
    EngagementStats,
    Profile,
    Session,
    Story,
)
from inkora.domain.ports import BaasClient, Notifier
from inkora.domain.query import BaasError, BaasResult, Query, table

__all__ = [
    "POEM_CONTENT_TYPE",
    "STORY_CONTENT_TYPE",
    "BaasClient",
    "BaasError",
    "BaasResult",
    "Chapter",
    "Comment",
    "EngagementStats",
    "Notifier",
    "Profile",
    "Query",
    "Session",
    "Story",
    "table",
]
