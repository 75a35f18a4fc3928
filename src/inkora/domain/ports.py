"""Ports for the hosted backend and user-facing notifications."""

from __future__ import annotations

from typing import Protocol

from inkora.domain.query import BaasResult, Query


class BaasClient(Protocol):
    """Table-style data access plus auth-session accessors.

    Every call resolves to a `BaasResult`; transport and backend failures are
    reported through `BaasResult.error` rather than raised.
    """

    async def execute(self, query: Query, *, access_token: str | None = None) -> BaasResult:
        ...

    async def sign_up(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        username: str,
    ) -> BaasResult:
        ...

    async def sign_in(self, *, email: str, password: str) -> BaasResult:
        ...

    async def get_user(self, *, access_token: str) -> BaasResult:
        ...

    async def sign_out(self, *, access_token: str) -> BaasResult:
        ...

    async def aclose(self) -> None:
        ...


class Notifier(Protocol):
    """Transient user-facing messages; no acknowledgment is expected."""

    def error(self, message: str) -> None:
        ...

    def success(self, message: str) -> None:
        ...

    def info(self, message: str) -> None:
        ...
