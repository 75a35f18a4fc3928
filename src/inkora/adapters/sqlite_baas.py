"""SQLite-backed stand-in for the hosted BaaS used in local preview and tests."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import secrets
import sqlite3
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any
from uuid import uuid4

from inkora.domain.query import (
    BaasResult,
    ColumnSelection,
    Filter,
    Query,
    parse_columns,
    shape_rows,
)

PBKDF2_ITERATIONS = 310_000
TOKEN_TTL_HOURS = 24

TABLE_COLUMNS: dict[str, tuple[str, ...]] = {
    "profiles": ("id", "first_name", "last_name", "username", "avatar_url", "created_at"),
    "stories": (
        "id",
        "user_id",
        "title",
        "description",
        "cover_image_url",
        "tags",
        "is_chapters",
        "status",
        "content_type",
        "created_at",
    ),
    "chapters": ("id", "story_id", "title", "chapter_number", "content", "created_at"),
    "single_stories": ("id", "story_id", "content", "created_at"),
    "story_views": ("id", "story_id", "user_id", "created_at"),
    "story_likes": ("id", "story_id", "user_id", "created_at"),
    "story_comments": ("id", "story_id", "user_id", "content", "created_at"),
    "chapter_views": ("id", "chapter_id", "user_id", "created_at"),
    "chapter_likes": ("id", "chapter_id", "user_id", "created_at"),
    "chapter_comments": ("id", "chapter_id", "user_id", "content", "created_at"),
}
JSON_COLUMNS = {("stories", "tags")}
BOOL_COLUMNS = {("stories", "is_chapters")}
# (table, relation) -> (local column, related table, related column)
EMBED_RELATIONS: dict[tuple[str, str], tuple[str, str, str]] = {
    ("story_comments", "profiles"): ("user_id", "profiles", "id"),
    ("chapter_comments", "profiles"): ("user_id", "profiles", "id"),
    ("stories", "profiles"): ("user_id", "profiles", "id"),
}

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS access_tokens (
        token_value TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        expires_at TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (user_id) REFERENCES users(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS profiles (
        id TEXT PRIMARY KEY,
        first_name TEXT NOT NULL DEFAULT '',
        last_name TEXT NOT NULL DEFAULT '',
        username TEXT NOT NULL UNIQUE,
        avatar_url TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY (id) REFERENCES users(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS stories (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        cover_image_url TEXT,
        tags TEXT,
        is_chapters INTEGER NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'draft',
        content_type TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS chapters (
        id TEXT PRIMARY KEY,
        story_id TEXT NOT NULL,
        title TEXT NOT NULL,
        chapter_number INTEGER NOT NULL,
        content TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY (story_id) REFERENCES stories(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS single_stories (
        id TEXT PRIMARY KEY,
        story_id TEXT NOT NULL UNIQUE,
        content TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY (story_id) REFERENCES stories(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS story_views (
        id TEXT PRIMARY KEY,
        story_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS story_likes (
        id TEXT PRIMARY KEY,
        story_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        UNIQUE (story_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS story_comments (
        id TEXT PRIMARY KEY,
        story_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        content TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS chapter_views (
        id TEXT PRIMARY KEY,
        chapter_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS chapter_likes (
        id TEXT PRIMARY KEY,
        chapter_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        UNIQUE (chapter_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS chapter_comments (
        id TEXT PRIMARY KEY,
        chapter_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        content TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_stories_owner ON stories(user_id, created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_chapters_story ON chapters(story_id, chapter_number)",
    "CREATE INDEX IF NOT EXISTS idx_story_comments_story ON story_comments(story_id, created_at)",
)


class QueryRejected(ValueError):
    """Query references something the local schema does not have."""

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.code = code


def _hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt.hex()}${digest.hex()}"


def _verify_password(password: str, password_hash: str) -> bool:
    try:
        algorithm, iterations, salt_hex, digest_hex = password_hash.split("$", maxsplit=3)
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    recomputed = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        bytes.fromhex(salt_hex),
        int(iterations),
    )
    return hmac.compare_digest(recomputed.hex(), digest_hex)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class SQLiteBaas:
    """Interpret BaaS queries against one local SQLite database."""

    def __init__(self, db_path: Path, *, token_ttl_hours: int = TOKEN_TTL_HOURS) -> None:
        self._db_path = db_path
        self._token_ttl = timedelta(hours=token_ttl_hours)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(str(self._db_path))
        connection.row_factory = sqlite3.Row
        return connection

    def _initialize_schema(self) -> None:
        with self._connect() as connection:
            for statement in _SCHEMA:
                connection.execute(statement)

    async def execute(self, query: Query, *, access_token: str | None = None) -> BaasResult:
        return await asyncio.to_thread(self.execute_sync, query)

    def execute_sync(self, query: Query) -> BaasResult:
        """Run one query synchronously; errors come back as failed results."""
        try:
            columns = self._table_columns(query.table)
            for query_filter in query.filters:
                self._require_column(query.table, columns, query_filter.column)
            with self._connect() as connection:
                if query.action == "select":
                    return self._select(connection, query, columns)
                if query.action == "count":
                    return self._count(connection, query)
                if query.action == "insert":
                    return self._insert(connection, query, columns)
                if query.action == "update":
                    return self._update(connection, query, columns)
                return self._delete(connection, query, columns)
        except QueryRejected as exc:
            return BaasResult.failure(str(exc), code=exc.code, status=400)
        except sqlite3.IntegrityError as exc:
            return BaasResult.failure(str(exc), code="23505", status=409)
        except sqlite3.Error as exc:
            return BaasResult.failure(str(exc), code="sqlite", status=500)

    @staticmethod
    def _table_columns(table_name: str) -> tuple[str, ...]:
        columns = TABLE_COLUMNS.get(table_name)
        if columns is None:
            raise QueryRejected(f'relation "{table_name}" does not exist', code="42P01")
        return columns

    @staticmethod
    def _require_column(table_name: str, columns: Sequence[str], column: str) -> str:
        if column not in columns:
            raise QueryRejected(f'column {table_name}.{column} does not exist', code="42703")
        return column

    @staticmethod
    def _encode(table_name: str, column: str, value: Any) -> Any:
        if (table_name, column) in JSON_COLUMNS and value is not None:
            return json.dumps(list(value), ensure_ascii=False)
        if isinstance(value, bool):
            return int(value)
        return value

    @staticmethod
    def _decode_row(table_name: str, row: sqlite3.Row) -> dict[str, Any]:
        decoded: dict[str, Any] = {}
        for key in row.keys():
            value = row[key]
            if (table_name, key) in JSON_COLUMNS:
                value = json.loads(value) if value else None
            elif (table_name, key) in BOOL_COLUMNS:
                value = bool(value)
            decoded[key] = value
        return decoded

    def _where(self, table_name: str, filters: Sequence[Filter]) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        for query_filter in filters:
            if query_filter.operator == "eq":
                clauses.append(f"{query_filter.column} = ?")
                params.append(self._encode(table_name, query_filter.column, query_filter.value))
                continue
            values = list(query_filter.value)
            if not values:
                clauses.append("0")
                continue
            placeholders = ", ".join("?" for _ in values)
            clauses.append(f"{query_filter.column} IN ({placeholders})")
            params.extend(self._encode(table_name, query_filter.column, value) for value in values)
        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params

    def _selected_columns(
        self, table_name: str, columns: Sequence[str], selection: ColumnSelection
    ) -> list[str]:
        if selection.is_wildcard:
            return list(columns)
        return [self._require_column(table_name, columns, column) for column in selection.columns]

    def _fetch(
        self,
        connection: sqlite3.Connection,
        query: Query,
        columns: Sequence[str],
        *,
        filters: Sequence[Filter] | None = None,
    ) -> list[dict[str, Any]]:
        selection = parse_columns(query.columns)
        requested = self._selected_columns(query.table, columns, selection)
        fetched = list(requested)
        for embed in selection.embeds:
            relation = EMBED_RELATIONS.get((query.table, embed.relation))
            if relation is None:
                raise QueryRejected(
                    f"Could not find a relationship between '{query.table}' and '{embed.relation}'",
                    code="PGRST200",
                )
            if relation[0] not in fetched:
                fetched.append(relation[0])

        where_sql, params = self._where(query.table, query.filters if filters is None else filters)
        sql = f"SELECT {', '.join(fetched)} FROM {query.table}{where_sql}"
        if query.order_column is not None:
            self._require_column(query.table, columns, query.order_column)
            direction = "ASC" if query.ascending else "DESC"
            sql += f" ORDER BY {query.order_column} {direction}, rowid {direction}"
        if query.limit is not None:
            sql += " LIMIT ?"
            params.append(query.limit)
        rows = [self._decode_row(query.table, row) for row in connection.execute(sql, params)]

        for embed in selection.embeds:
            local_column, related_table, related_column = EMBED_RELATIONS[
                (query.table, embed.relation)
            ]
            related_columns = TABLE_COLUMNS[related_table]
            embed_columns = (
                list(related_columns)
                if "*" in embed.columns
                else [
                    self._require_column(related_table, related_columns, column)
                    for column in embed.columns
                ]
            )
            for row in rows:
                related = connection.execute(
                    f"SELECT {', '.join(embed_columns)} FROM {related_table} "
                    f"WHERE {related_column} = ?",
                    (row[local_column],),
                ).fetchone()
                row[embed.relation] = (
                    self._decode_row(related_table, related) if related is not None else None
                )
        for row in rows:
            for column in set(fetched) - set(requested):
                row.pop(column, None)
        return rows

    def _select(
        self, connection: sqlite3.Connection, query: Query, columns: Sequence[str]
    ) -> BaasResult:
        return shape_rows(self._fetch(connection, query, columns), query.cardinality)

    def _count(self, connection: sqlite3.Connection, query: Query) -> BaasResult:
        where_sql, params = self._where(query.table, query.filters)
        row = connection.execute(f"SELECT COUNT(*) FROM {query.table}{where_sql}", params).fetchone()
        return BaasResult(count=int(row[0]))

    def _returned(
        self,
        connection: sqlite3.Connection,
        query: Query,
        columns: Sequence[str],
        row_ids: Sequence[str],
    ) -> BaasResult:
        if not query.returning:
            return BaasResult()
        rows = self._fetch(connection, query, columns, filters=[Filter("id", "in", tuple(row_ids))])
        return shape_rows(rows, query.cardinality)

    def _insert(
        self, connection: sqlite3.Connection, query: Query, columns: Sequence[str]
    ) -> BaasResult:
        values: dict[str, Any] = dict(query.values)
        for column in values:
            self._require_column(query.table, columns, column)
        values.setdefault("id", uuid4().hex)
        values.setdefault("created_at", _utc_now().isoformat())
        names = list(values)
        connection.execute(
            f"INSERT INTO {query.table} ({', '.join(names)}) "
            f"VALUES ({', '.join('?' for _ in names)})",
            [self._encode(query.table, name, values[name]) for name in names],
        )
        return self._returned(connection, query, columns, [str(values["id"])])

    def _matching_ids(self, connection: sqlite3.Connection, query: Query) -> list[str]:
        if not query.filters:
            raise QueryRejected(f"{query.action.upper()} requires a WHERE clause", code="21000")
        where_sql, params = self._where(query.table, query.filters)
        return [
            str(row["id"])
            for row in connection.execute(f"SELECT id FROM {query.table}{where_sql}", params)
        ]

    def _update(
        self, connection: sqlite3.Connection, query: Query, columns: Sequence[str]
    ) -> BaasResult:
        values: Mapping[str, Any] = query.values
        if not values:
            raise QueryRejected("UPDATE requires at least one column", code="PGRST204")
        for column in values:
            self._require_column(query.table, columns, column)
        row_ids = self._matching_ids(connection, query)
        if row_ids:
            assignments = ", ".join(f"{column} = ?" for column in values)
            params = [self._encode(query.table, column, value) for column, value in values.items()]
            placeholders = ", ".join("?" for _ in row_ids)
            connection.execute(
                f"UPDATE {query.table} SET {assignments} WHERE id IN ({placeholders})",
                [*params, *row_ids],
            )
        return self._returned(connection, query, columns, row_ids)

    def _delete(
        self, connection: sqlite3.Connection, query: Query, columns: Sequence[str]
    ) -> BaasResult:
        row_ids = self._matching_ids(connection, query)
        returned = self._returned(connection, query, columns, row_ids)
        if row_ids:
            placeholders = ", ".join("?" for _ in row_ids)
            connection.execute(f"DELETE FROM {query.table} WHERE id IN ({placeholders})", row_ids)
        return returned

    async def sign_up(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        username: str,
    ) -> BaasResult:
        return await asyncio.to_thread(
            self._sign_up_sync, email, password, first_name, last_name, username
        )

    def _sign_up_sync(
        self, email: str, password: str, first_name: str, last_name: str, username: str
    ) -> BaasResult:
        user_id = uuid4().hex
        now = _utc_now().isoformat()
        try:
            with self._connect() as connection:
                connection.execute(
                    "INSERT INTO users (id, email, password_hash, created_at) VALUES (?, ?, ?, ?)",
                    (user_id, email.lower(), _hash_password(password), now),
                )
                connection.execute(
                    """
                    INSERT INTO profiles (id, first_name, last_name, username, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (user_id, first_name, last_name, username, now),
                )
        except sqlite3.IntegrityError as exc:
            if "profiles.username" in str(exc):
                return BaasResult.failure(
                    "Username already taken", code="username_taken", status=422
                )
            return BaasResult.failure(
                "User already registered", code="user_already_exists", status=422
            )
        return BaasResult(data={"user": {"id": user_id, "email": email.lower()}})

    async def sign_in(self, *, email: str, password: str) -> BaasResult:
        return await asyncio.to_thread(self._sign_in_sync, email, password)

    def _sign_in_sync(self, email: str, password: str) -> BaasResult:
        with self._connect() as connection:
            row = connection.execute(
                "SELECT id, email, password_hash FROM users WHERE email = ?",
                (email.lower(),),
            ).fetchone()
            if row is None or not _verify_password(password, str(row["password_hash"])):
                return BaasResult.failure(
                    "Invalid login credentials", code="invalid_credentials", status=400
                )
            now = _utc_now()
            token = secrets.token_urlsafe(32)
            expires_at = (now + self._token_ttl).isoformat()
            connection.execute(
                """
                INSERT INTO access_tokens (token_value, user_id, expires_at, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (token, str(row["id"]), expires_at, now.isoformat()),
            )
        return BaasResult(
            data={
                "access_token": token,
                "token_type": "bearer",
                "expires_at": expires_at,
                "user": {"id": str(row["id"]), "email": str(row["email"])},
            }
        )

    async def get_user(self, *, access_token: str) -> BaasResult:
        return await asyncio.to_thread(self._get_user_sync, access_token)

    def _get_user_sync(self, access_token: str) -> BaasResult:
        with self._connect() as connection:
            row = connection.execute(
                """
                SELECT u.id, u.email
                FROM access_tokens t
                JOIN users u ON u.id = t.user_id
                WHERE t.token_value = ? AND t.expires_at > ?
                """,
                (access_token, _utc_now().isoformat()),
            ).fetchone()
        if row is None:
            return BaasResult.failure("Invalid or expired token", code="bad_jwt", status=401)
        return BaasResult(data={"id": str(row["id"]), "email": str(row["email"])})

    async def sign_out(self, *, access_token: str) -> BaasResult:
        return await asyncio.to_thread(self._sign_out_sync, access_token)

    def _sign_out_sync(self, access_token: str) -> BaasResult:
        with self._connect() as connection:
            connection.execute("DELETE FROM access_tokens WHERE token_value = ?", (access_token,))
        return BaasResult()

    async def aclose(self) -> None:
        return None
