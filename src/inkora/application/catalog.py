"""Story listings for the home and profile pages."""

from __future__ import annotations

import logging

from inkora.domain.models import Story
from inkora.domain.ports import BaasClient
from inkora.domain.query import table

RECENT_STORY_LIMIT = 24

logger = logging.getLogger(__name__)


async def list_recent_stories(
    client: BaasClient, *, limit: int = RECENT_STORY_LIMIT
) -> list[Story]:
    result = await client.execute(
        table("stories").select("*").order("created_at", ascending=False).limit_to(limit)
    )
    if result.error is not None:
        logger.warning("catalog.recent_failed message=%s", result.error.message)
    return [Story.from_row(row) for row in result.rows()]


async def list_owner_stories(client: BaasClient, *, owner_id: str, access_token: str) -> list[Story]:
    result = await client.execute(
        table("stories").select("*").eq("user_id", owner_id).order("created_at", ascending=False),
        access_token=access_token,
    )
    if result.error is not None:
        logger.warning(
            "catalog.owner_failed owner_id=%s message=%s", owner_id, result.error.message
        )
    return [Story.from_row(row) for row in result.rows()]
