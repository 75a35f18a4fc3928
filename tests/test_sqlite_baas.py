from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from inkora.adapters.sqlite_baas import SQLiteBaas
from inkora.domain.query import table


@pytest.fixture
def baas(tmp_path: Path) -> SQLiteBaas:
    return SQLiteBaas(db_path=tmp_path / "nested" / "inkora.db")


def _sign_up(baas: SQLiteBaas, email: str = "alice@example.com", username: str = "alice") -> str:
    result = asyncio.run(
        baas.sign_up(
            email=email,
            password="password123",
            first_name="Alice",
            last_name="Writer",
            username=username,
        )
    )
    assert result.ok
    return str(result.data["user"]["id"])


def test_schema_is_created_under_missing_parent(baas: SQLiteBaas) -> None:
    assert baas.db_path.exists()
    assert baas.execute_sync(table("stories").select("*")).data == []


def test_auth_lifecycle(baas: SQLiteBaas) -> None:
    user_id = _sign_up(baas)

    duplicate = asyncio.run(
        baas.sign_up(
            email="ALICE@example.com",
            password="password123",
            first_name="A",
            last_name="B",
            username="alice2",
        )
    )
    wrong = asyncio.run(baas.sign_in(email="alice@example.com", password="nope"))
    signed_in = asyncio.run(baas.sign_in(email="Alice@Example.com", password="password123"))

    assert duplicate.error is not None and duplicate.error.code == "user_already_exists"
    assert wrong.error is not None and wrong.error.code == "invalid_credentials"
    token = signed_in.data["access_token"]
    user = asyncio.run(baas.get_user(access_token=token))
    assert user.data == {"id": user_id, "email": "alice@example.com"}

    asyncio.run(baas.sign_out(access_token=token))
    after = asyncio.run(baas.get_user(access_token=token))
    assert after.error is not None
    assert after.error.status == 401


def test_sign_up_creates_profile_row(baas: SQLiteBaas) -> None:
    user_id = _sign_up(baas)

    profile = baas.execute_sync(
        table("profiles").select("first_name, username").eq("id", user_id).single()
    )

    assert profile.data == {"first_name": "Alice", "username": "alice"}


def test_insert_returning_decodes_json_and_bool_columns(baas: SQLiteBaas) -> None:
    created = baas.execute_sync(
        table("stories")
        .insert({"user_id": "u1", "title": "T", "tags": ["a", "b"], "is_chapters": True})
        .returning_columns("id, tags, is_chapters")
        .single()
    )

    assert created.ok
    assert created.data["tags"] == ["a", "b"]
    assert created.data["is_chapters"] is True
    assert set(created.data) == {"id", "tags", "is_chapters"}


def test_select_filters_orders_and_limits(baas: SQLiteBaas) -> None:
    for number in (3, 1, 2):
        baas.execute_sync(
            table("chapters").insert(
                {"story_id": "s1", "title": f"c{number}", "chapter_number": number}
            )
        )
    baas.execute_sync(
        table("chapters").insert({"story_id": "s2", "title": "x", "chapter_number": 1})
    )

    ordered = baas.execute_sync(
        table("chapters").select("title").eq("story_id", "s1").order("chapter_number")
    )
    limited = baas.execute_sync(
        table("chapters")
        .select("title")
        .eq("story_id", "s1")
        .order("chapter_number", ascending=False)
        .limit_to(1)
    )

    assert [row["title"] for row in ordered.rows()] == ["c1", "c2", "c3"]
    assert limited.rows() == [{"title": "c3"}]


def test_count_with_in_filter_and_empty_in(baas: SQLiteBaas) -> None:
    for chapter_id in ("c1", "c1", "c2", "c3"):
        baas.execute_sync(table("chapter_views").insert({"chapter_id": chapter_id, "user_id": "u"}))

    counted = baas.execute_sync(table("chapter_views").in_("chapter_id", ["c1", "c2"]).count())
    empty = baas.execute_sync(table("chapter_views").in_("chapter_id", []).count())

    assert counted.count == 3
    assert counted.data is None
    assert empty.count == 0


def test_embedded_profiles_on_comments(baas: SQLiteBaas) -> None:
    user_id = _sign_up(baas)
    baas.execute_sync(
        table("story_comments").insert({"story_id": "s1", "user_id": user_id, "content": "hi"})
    )
    baas.execute_sync(
        table("story_comments").insert({"story_id": "s1", "user_id": "ghost", "content": "boo"})
    )

    result = baas.execute_sync(
        table("story_comments")
        .select("*, profiles (username, avatar_url)")
        .eq("story_id", "s1")
        .order("created_at")
    )

    rows = result.rows()
    assert rows[0]["profiles"] == {"username": "alice", "avatar_url": None}
    assert rows[0]["content"] == "hi"
    assert rows[1]["profiles"] is None


def test_unknown_relation_and_column_are_reported(baas: SQLiteBaas) -> None:
    missing_table = baas.execute_sync(table("nope").select("*"))
    missing_column = baas.execute_sync(table("stories").select("*").eq("missing", 1))
    bad_embed = baas.execute_sync(table("chapters").select("*, profiles (username)"))

    assert missing_table.error is not None and missing_table.error.code == "42P01"
    assert missing_column.error is not None and missing_column.error.code == "42703"
    assert bad_embed.error is not None and bad_embed.error.code == "PGRST200"


def test_update_and_delete_require_filters(baas: SQLiteBaas) -> None:
    baas.execute_sync(table("story_likes").insert({"story_id": "s1", "user_id": "u1"}))

    unfiltered = baas.execute_sync(table("story_likes").delete())
    duplicate = baas.execute_sync(table("story_likes").insert({"story_id": "s1", "user_id": "u1"}))
    deleted = baas.execute_sync(
        table("story_likes").delete().eq("story_id", "s1").eq("user_id", "u1")
    )
    updated = baas.execute_sync(
        table("single_stories").update({"content": "x"}).eq("story_id", "none")
    )

    assert unfiltered.error is not None and unfiltered.error.code == "21000"
    assert duplicate.error is not None and duplicate.error.code == "23505"
    assert deleted.ok
    assert baas.execute_sync(table("story_likes").count()).count == 0
    assert updated.ok


def test_async_execute_matches_sync(baas: SQLiteBaas) -> None:
    baas.execute_sync(table("story_views").insert({"story_id": "s1", "user_id": "u1"}))

    result = asyncio.run(baas.execute(table("story_views").eq("story_id", "s1").count()))

    assert result.count == 1


def test_duplicate_username_is_reported_separately_and_rolled_back(baas: SQLiteBaas) -> None:
    _sign_up(baas)

    taken = asyncio.run(
        baas.sign_up(
            email="other@example.com",
            password="password123",
            first_name="O",
            last_name="W",
            username="alice",
        )
    )

    assert taken.error is not None
    assert taken.error.code == "username_taken"
    assert _sign_up(baas, email="other@example.com", username="other")
