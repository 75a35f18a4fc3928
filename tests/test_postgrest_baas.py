from __future__ import annotations

import asyncio
import json
from collections.abc import Callable

import httpx

from inkora.adapters.postgrest_baas import (
    PostgrestBaas,
    filter_param,
    parse_content_range_total,
)
from inkora.domain.query import Filter, table

Handler = Callable[[httpx.Request], httpx.Response]


def _client(handler: Handler) -> PostgrestBaas:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PostgrestBaas(
        base_url="https://project.example/", anon_key="anon", http_client=http_client
    )


def test_filter_params_and_content_range() -> None:
    assert filter_param(Filter("id", "eq", "s1")) == ("id", "eq.s1")
    assert filter_param(Filter("is_chapters", "eq", True)) == ("is_chapters", "eq.true")
    assert filter_param(Filter("cover_image_url", "eq", None)) == ("cover_image_url", "is.null")
    assert filter_param(Filter("chapter_id", "in", ("c1", 'c"2'))) == (
        "chapter_id",
        'in.("c1","c\\"2")',
    )
    assert parse_content_range_total("0-9/42") == 42
    assert parse_content_range_total("*/0") == 0
    assert parse_content_range_total("0-9/*") is None
    assert parse_content_range_total(None) is None


def test_select_single_sends_filters_order_and_auth_headers() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"id": "s1", "title": "Sea"}])

    client = _client(handler)
    result = asyncio.run(
        client.execute(
            table("stories")
            .select("id, title")
            .eq("id", "s1")
            .order("created_at", ascending=False)
            .single(),
            access_token="user-token",
        )
    )

    assert result.data == {"id": "s1", "title": "Sea"}
    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/stories"
    assert request.url.params["select"] == "id,title"
    assert request.url.params["id"] == "eq.s1"
    assert request.url.params["order"] == "created_at.desc"
    assert request.headers["apikey"] == "anon"
    assert request.headers["authorization"] == "Bearer user-token"


def test_single_with_no_rows_is_an_error() -> None:
    client = _client(lambda request: httpx.Response(200, json=[]))

    result = asyncio.run(client.execute(table("stories").select("*").eq("id", "x").single()))

    assert result.error is not None
    assert result.error.code == "PGRST116"


def test_count_uses_head_and_content_range() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, headers={"Content-Range": "*/7"})

    client = _client(handler)
    result = asyncio.run(
        client.execute(table("chapter_views").in_("chapter_id", ["c1", "c2"]).count())
    )

    assert result.count == 7
    assert seen[0].method == "HEAD"
    assert seen[0].headers["prefer"] == "count=exact"
    assert seen[0].headers["authorization"] == "Bearer anon"
    assert seen[0].url.params["chapter_id"] == 'in.("c1","c2")'


def test_insert_with_returning_posts_json_body() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            201,
            json=[{"id": "k1", "content": "hi", "profiles": {"username": "alice"}}],
        )

    client = _client(handler)
    result = asyncio.run(
        client.execute(
            table("story_comments")
            .insert({"story_id": "s1", "content": "hi"})
            .returning_columns("*, profiles (username)")
        )
    )

    assert result.rows()[0]["profiles"] == {"username": "alice"}
    request = seen[0]
    assert request.method == "POST"
    assert request.headers["prefer"] == "return=representation"
    assert request.url.params["select"] == "*,profiles(username)"
    assert json.loads(request.content) == {"story_id": "s1", "content": "hi"}


def test_delete_without_filters_is_refused_locally() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(204)

    client = _client(handler)
    refused = asyncio.run(client.execute(table("story_likes").delete()))
    deleted = asyncio.run(client.execute(table("story_likes").delete().eq("story_id", "s1")))

    assert refused.error is not None and refused.error.code == "21000"
    assert deleted.ok and deleted.data is None
    assert len(calls) == 1
    assert calls[0].headers["prefer"] == "return=minimal"


def test_http_errors_become_failed_results() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"code": "23505", "message": "duplicate key"})

    client = _client(handler)
    result = asyncio.run(client.execute(table("story_likes").insert({"story_id": "s1"})))

    assert result.error is not None
    assert result.error.code == "23505"
    assert result.error.message == "duplicate key"
    assert result.error.status == 409


def test_transport_errors_become_network_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    result = asyncio.run(client.execute(table("stories").select("*")))

    assert result.error is not None
    assert result.error.code == "network"


def test_auth_endpoints() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path.endswith("/token"):
            return httpx.Response(
                200, json={"access_token": "t1", "user": {"id": "u1", "email": "a@b.co"}}
            )
        if request.url.path.endswith("/user"):
            return httpx.Response(200, json={"id": "u1", "email": "a@b.co"})
        if request.url.path.endswith("/logout"):
            return httpx.Response(204)
        return httpx.Response(
            400, json={"error_code": "user_already_exists", "msg": "User already registered"}
        )

    client = _client(handler)

    async def flow() -> None:
        signed_in = await client.sign_in(email="a@b.co", password="secret123")
        assert signed_in.data["access_token"] == "t1"
        user = await client.get_user(access_token="t1")
        assert user.data["id"] == "u1"
        signed_up = await client.sign_up(
            email="a@b.co", password="secret123", first_name="A", last_name="B", username="ab"
        )
        assert signed_up.error is not None
        assert signed_up.error.code == "user_already_exists"
        assert signed_up.error.message == "User already registered"
        signed_out = await client.sign_out(access_token="t1")
        assert signed_out.ok
        await client.aclose()

    asyncio.run(flow())

    token_request, user_request, signup_request, logout_request = seen
    assert token_request.url.params["grant_type"] == "password"
    assert user_request.headers["authorization"] == "Bearer t1"
    assert json.loads(signup_request.content)["data"] == {
        "first_name": "A",
        "last_name": "B",
        "username": "ab",
    }
    assert logout_request.method == "POST"


def test_non_json_success_bodies_become_invalid_response_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    client = _client(handler)

    async def flow() -> None:
        selected = await client.execute(table("stories").select("*").eq("id", "s1").single())
        user = await client.get_user(access_token="t1")
        for result in (selected, user):
            assert not result.ok
            assert result.error is not None
            assert result.error.code == "invalid_response"
            assert result.error.status == 200
        await client.aclose()

    asyncio.run(flow())
