"""In-request notification collector rendered as toasts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

NoticeLevel = Literal["error", "success", "info"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notice:
    """One transient user-facing message."""

    level: NoticeLevel
    message: str


class NotificationCenter:
    """Collects notices raised while handling one request."""

    def __init__(self, notices: list[Notice] | None = None) -> None:
        self._notices: list[Notice] = list(notices or [])

    def _push(self, level: NoticeLevel, message: str) -> None:
        logger.debug("notice.%s message=%s", level, message)
        self._notices.append(Notice(level=level, message=message))

    def error(self, message: str) -> None:
        self._push("error", message)

    def success(self, message: str) -> None:
        self._push("success", message)

    def info(self, message: str) -> None:
        self._push("info", message)

    @property
    def notices(self) -> tuple[Notice, ...]:
        return tuple(self._notices)

    def drain(self) -> list[Notice]:
        drained = list(self._notices)
        self._notices.clear()
        return drained
