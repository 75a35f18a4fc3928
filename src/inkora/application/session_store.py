"""Process-wide session store keyed by BaaS access token."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from inkora.domain.models import Profile, Session
from inkora.domain.ports import BaasClient
from inkora.domain.query import table

DEFAULT_TTL_SECONDS = 300
PROFILE_COLUMNS = "first_name, last_name, username, avatar_url"

logger = logging.getLogger(__name__)


class SessionStore:
    """Resolve access tokens once and share the session across requests.

    Created when the application starts and cleared when it stops; sign-out
    invalidates the signed-out token immediately.
    """

    def __init__(
        self,
        client: BaasClient,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, tuple[Session, float]] = {}

    async def resolve(self, access_token: str | None) -> Session | None:
        """Return the session for a token, or None when it is missing or invalid."""
        if not access_token:
            return None
        cached = self._sessions.get(access_token)
        if cached is not None and cached[1] > self._clock():
            return cached[0]
        # No lock: lookups run concurrently and `_store` never awaits.
        session = await self._load(access_token)
        if session is None:
            self._sessions.pop(access_token, None)
            return None
        self._store(access_token, session)
        return session

    def _store(self, access_token: str, session: Session) -> None:
        now = self._clock()
        expired = [token for token, (_, expires_at) in self._sessions.items() if expires_at <= now]
        for token in expired:
            del self._sessions[token]
        self._sessions[access_token] = (session, now + self._ttl_seconds)

    async def _load(self, access_token: str) -> Session | None:
        result = await self._client.get_user(access_token=access_token)
        if not result.ok or not isinstance(result.data, dict):
            if result.error is not None:
                logger.info("session.rejected code=%s", result.error.code)
            return None
        user_id = str(result.data.get("id") or "")
        if not user_id:
            return None
        profile_result = await self._client.execute(
            table("profiles").select(PROFILE_COLUMNS).eq("id", user_id).maybe_single(),
            access_token=access_token,
        )
        if not profile_result.ok:
            logger.warning(
                "session.profile_missing user_id=%s message=%s",
                user_id,
                profile_result.error.message if profile_result.error else "",
            )
        return Session(
            user_id=user_id,
            email=str(result.data.get("email") or ""),
            access_token=access_token,
            profile=Profile.from_row(profile_result.data if profile_result.ok else None),
        )

    def invalidate(self, access_token: str | None) -> None:
        if access_token:
            self._sessions.pop(access_token, None)

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)
