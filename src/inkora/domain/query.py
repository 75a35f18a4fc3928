"""Table-style BaaS query description and result values.

Queries are immutable and built fluently, mirroring the hosted client's API:

    table("stories").select("*").eq("id", story_id).single()

Adapters interpret a finished `Query`; nothing here performs I/O.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Literal

QueryAction = Literal["select", "count", "insert", "update", "delete"]
Cardinality = Literal["many", "single", "maybe_single"]
FilterOperator = Literal["eq", "in"]

IDENTIFIER_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*$")
_EMBED_PATTERN = re.compile(r"^([a-z_][a-z0-9_]*)\s*\((.*)\)$", re.DOTALL)


def _require_identifier(value: str, *, kind: str) -> str:
    if not IDENTIFIER_PATTERN.match(value):
        raise ValueError(f"Invalid {kind} identifier: {value!r}")
    return value


@dataclass(frozen=True)
class Filter:
    """One column predicate."""

    column: str
    operator: FilterOperator
    value: Any


@dataclass(frozen=True)
class Embed:
    """Related-table expansion requested inside a select column list."""

    relation: str
    columns: tuple[str, ...]


@dataclass(frozen=True)
class ColumnSelection:
    """Parsed `select` column list."""

    columns: tuple[str, ...]
    embeds: tuple[Embed, ...] = ()

    @property
    def is_wildcard(self) -> bool:
        return "*" in self.columns


def _split_top_level(raw: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for char in raw:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


def parse_columns(raw: str) -> ColumnSelection:
    """Parse `*, profiles (first_name, username)` into columns and embeds."""
    columns: list[str] = []
    embeds: list[Embed] = []
    for part in _split_top_level(raw):
        match = _EMBED_PATTERN.match(part)
        if match is not None:
            relation = _require_identifier(match.group(1), kind="relation")
            embed_columns = tuple(
                _require_identifier(column, kind="column")
                if column != "*"
                else column
                for column in _split_top_level(match.group(2))
            )
            embeds.append(Embed(relation=relation, columns=embed_columns or ("*",)))
            continue
        if part != "*":
            _require_identifier(part, kind="column")
        columns.append(part)
    if not columns and not embeds:
        columns.append("*")
    return ColumnSelection(columns=tuple(columns), embeds=tuple(embeds))


def compact_columns(raw: str) -> str:
    """Collapse whitespace so the column list can be sent as a URL parameter."""
    return re.sub(r"\s+", "", raw)


@dataclass(frozen=True)
class Query:
    """Immutable description of one table operation."""

    table: str
    action: QueryAction = "select"
    columns: str = "*"
    filters: tuple[Filter, ...] = ()
    order_column: str | None = None
    ascending: bool = True
    limit: int | None = None
    cardinality: Cardinality = "many"
    returning: bool = False
    values: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_identifier(self.table, kind="table")

    def select(self, columns: str = "*") -> Query:
        return replace(self, action="select", columns=columns)

    def count(self) -> Query:
        return replace(self, action="count")

    def insert(self, values: Mapping[str, Any]) -> Query:
        return replace(self, action="insert", values=dict(values))

    def update(self, values: Mapping[str, Any]) -> Query:
        return replace(self, action="update", values=dict(values))

    def delete(self) -> Query:
        return replace(self, action="delete")

    def returning_columns(self, columns: str = "*") -> Query:
        """Ask a write to return the affected rows with the given columns."""
        return replace(self, columns=columns, returning=True)

    def eq(self, column: str, value: Any) -> Query:
        _require_identifier(column, kind="column")
        return replace(self, filters=(*self.filters, Filter(column, "eq", value)))

    def in_(self, column: str, values: Iterable[Any]) -> Query:
        _require_identifier(column, kind="column")
        return replace(self, filters=(*self.filters, Filter(column, "in", tuple(values))))

    def order(self, column: str, *, ascending: bool = True) -> Query:
        _require_identifier(column, kind="column")
        return replace(self, order_column=column, ascending=ascending)

    def limit_to(self, count: int) -> Query:
        if count < 1:
            raise ValueError("limit must be positive")
        return replace(self, limit=count)

    def single(self) -> Query:
        return replace(self, cardinality="single")

    def maybe_single(self) -> Query:
        return replace(self, cardinality="maybe_single")

    @property
    def is_write(self) -> bool:
        return self.action in {"insert", "update", "delete"}


def table(name: str) -> Query:
    """Start a query against one table."""
    return Query(table=name)


@dataclass(frozen=True)
class BaasError:
    """Error indicator returned by the BaaS instead of a payload."""

    message: str
    code: str | None = None
    status: int | None = None


@dataclass(frozen=True)
class BaasResult:
    """Outcome of a BaaS call: a payload (data and/or count) or an error."""

    data: Any = None
    count: int | None = None
    error: BaasError | None = None

    def __post_init__(self) -> None:
        if self.error is not None and (self.data is not None or self.count is not None):
            raise ValueError("BaasResult carries either a payload or an error, never both.")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, message: str, *, code: str | None = None, status: int | None = None) -> BaasResult:
        return cls(error=BaasError(message=message, code=code, status=status))

    def rows(self) -> list[dict[str, Any]]:
        """Return data as a list of rows; empty on error or no payload."""
        if self.error is not None or self.data is None:
            return []
        if isinstance(self.data, list):
            return [dict(row) for row in self.data]
        return [dict(self.data)]


def shape_rows(rows: list[dict[str, Any]], cardinality: Cardinality) -> BaasResult:
    """Apply the requested cardinality to fetched rows."""
    if cardinality == "many":
        return BaasResult(data=rows)
    if cardinality == "maybe_single" and not rows:
        return BaasResult(data=None)
    if len(rows) != 1:
        return BaasResult.failure(
            "JSON object requested, multiple (or no) rows returned",
            code="PGRST116",
            status=406,
        )
    return BaasResult(data=rows[0])
