"""HTTP client for the hosted BaaS (PostgREST data API plus GoTrue auth)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from inkora.domain.query import BaasResult, Filter, Query, compact_columns, shape_rows

DEFAULT_TIMEOUT_SECONDS = 30.0

logger = logging.getLogger(__name__)


def _literal(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quoted(value: Any) -> str:
    text = _literal(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def filter_param(query_filter: Filter) -> tuple[str, str]:
    """Encode one filter as a PostgREST query parameter."""
    if query_filter.operator == "eq":
        if query_filter.value is None:
            return query_filter.column, "is.null"
        return query_filter.column, f"eq.{_literal(query_filter.value)}"
    values = ",".join(_quoted(value) for value in query_filter.value)
    return query_filter.column, f"in.({values})"


def parse_content_range_total(header: str | None) -> int | None:
    """Extract the total from `Content-Range: 0-9/42` or `*/42`."""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", maxsplit=1)[1].strip()
    if not total.isdigit():
        return None
    return int(total)


def _error_from_response(response: httpx.Response) -> BaasResult:
    message = response.reason_phrase or f"HTTP {response.status_code}"
    code: str | None = None
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        message = str(
            payload.get("message")
            or payload.get("msg")
            or payload.get("error_description")
            or payload.get("error")
            or message
        )
        raw_code = payload.get("code") or payload.get("error_code") or payload.get("error")
        code = None if raw_code is None else str(raw_code)
    return BaasResult.failure(message, code=code, status=response.status_code)


def _json_body(response: httpx.Response) -> Any | BaasResult:
    """Decoded body of a successful response; empty bodies decode to None."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        logger.warning(
            "baas.invalid_response url=%s content_type=%s",
            response.request.url,
            response.headers.get("content-type", ""),
        )
        return BaasResult.failure(
            "Response body is not JSON", code="invalid_response", status=response.status_code
        )


class PostgrestBaas:
    """Translate `Query` values into PostgREST requests against the hosted project."""

    def __init__(
        self,
        *,
        base_url: str,
        anon_key: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._anon_key = anon_key
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    @property
    def base_url(self) -> str:
        return self._base_url

    def _headers(self, access_token: str | None) -> dict[str, str]:
        return {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {access_token or self._anon_key}",
        }

    def _params(self, query: Query) -> list[tuple[str, str]]:
        params = [filter_param(query_filter) for query_filter in query.filters]
        if query.action == "select" or query.returning:
            params.insert(0, ("select", compact_columns(query.columns)))
        if query.order_column is not None:
            direction = "asc" if query.ascending else "desc"
            params.append(("order", f"{query.order_column}.{direction}"))
        if query.limit is not None:
            params.append(("limit", str(query.limit)))
        return params

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: list[tuple[str, str]] | None = None,
        headers: dict[str, str],
        json: Any = None,
    ) -> httpx.Response | BaasResult:
        try:
            return await self._http.request(method, url, params=params, headers=headers, json=json)
        except httpx.HTTPError as exc:
            logger.warning("baas.transport_error method=%s url=%s error=%s", method, url, exc)
            return BaasResult.failure(str(exc) or exc.__class__.__name__, code="network")

    async def execute(self, query: Query, *, access_token: str | None = None) -> BaasResult:
        url = f"{self._base_url}/rest/v1/{query.table}"
        headers = self._headers(access_token)
        params = self._params(query)

        if query.action == "count":
            headers["Prefer"] = "count=exact"
            response = await self._send("HEAD", url, params=params, headers=headers)
            if isinstance(response, BaasResult):
                return response
            if response.is_error:
                return _error_from_response(response)
            total = parse_content_range_total(response.headers.get("content-range"))
            return BaasResult(count=total or 0)

        if query.action == "delete" and not query.filters:
            return BaasResult.failure("DELETE requires a WHERE clause", code="21000", status=400)

        method = {"select": "GET", "insert": "POST", "update": "PATCH", "delete": "DELETE"}[
            query.action
        ]
        body: Any = None
        if query.action in {"insert", "update"}:
            body = dict(query.values)
        if query.is_write:
            headers["Prefer"] = "return=representation" if query.returning else "return=minimal"

        response = await self._send(method, url, params=params, headers=headers, json=body)
        if isinstance(response, BaasResult):
            return response
        if response.is_error:
            return _error_from_response(response)
        if query.is_write and not query.returning:
            return BaasResult()
        rows = _json_body(response)
        if isinstance(rows, BaasResult):
            return rows
        if rows is None:
            rows = []
        return shape_rows(rows if isinstance(rows, list) else [rows], query.cardinality)

    async def _auth(
        self,
        method: str,
        path: str,
        *,
        access_token: str | None = None,
        json: Any = None,
        params: list[tuple[str, str]] | None = None,
    ) -> BaasResult:
        response = await self._send(
            method,
            f"{self._base_url}/auth/v1/{path}",
            params=params,
            headers=self._headers(access_token),
            json=json,
        )
        if isinstance(response, BaasResult):
            return response
        if response.is_error:
            return _error_from_response(response)
        data = _json_body(response)
        if isinstance(data, BaasResult):
            return data
        return BaasResult(data=data)

    async def sign_up(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        username: str,
    ) -> BaasResult:
        return await self._auth(
            "POST",
            "signup",
            json={
                "email": email,
                "password": password,
                "data": {
                    "first_name": first_name,
                    "last_name": last_name,
                    "username": username,
                },
            },
        )

    async def sign_in(self, *, email: str, password: str) -> BaasResult:
        return await self._auth(
            "POST",
            "token",
            params=[("grant_type", "password")],
            json={"email": email, "password": password},
        )

    async def get_user(self, *, access_token: str) -> BaasResult:
        return await self._auth("GET", "user", access_token=access_token)

    async def sign_out(self, *, access_token: str) -> BaasResult:
        return await self._auth("POST", "logout", access_token=access_token)

    async def aclose(self) -> None:
        await self._http.aclose()
