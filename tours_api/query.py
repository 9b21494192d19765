"""
Query engine — turns list-endpoint query parameters into a read specification.

A list request such as

    GET /api/v1/tours?difficulty=easy&price[lt]=1500&sort=-ratings_average,price
        &fields=name,price&page=2&limit=10

is parsed by parse_query_params() into an immutable QuerySpec with four
parts:

  1. Filters — `field=value` (exact match) or `field[op]=value` where op is
     one of gte, gt, lte, lt. All filters are AND-combined. Values are
     coerced to the column's Python type when the QuerySpec is applied.
  2. Sort — comma-separated fields, "-" prefix for descending. Defaults to
     newest first. The primary key is always appended so pagination is
     stable when sort keys tie.
  3. Projection — `fields=a,b` keeps only those fields (id is always
     kept); `fields=-a,-b` drops them. Without it the full public
     representation is returned. Naming a field outside the public
     representation is a 400.
  4. Pagination — `page` (1-based) and `limit`, turned into an
     offset/limit window. Pages past the end are simply empty, however
     large the page number.

Unknown filter keys are NOT dropped: they are treated as an exact match on
a field that no record has, so they produce an empty result. Only fields
of the public representation can be filtered or sorted on, which keeps
hidden columns (password hashes, reset tokens) out of reach.

The engine never touches the database. QuerySpec.apply() composes onto a
SQLAlchemy Select that the caller executes, and QuerySpec.project() trims
an already-serialized row.
"""

import re
import uuid
from collections.abc import Collection, Mapping
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import Select, false

from tours_api.exceptions import ValidationError

RESERVED_PARAMS = frozenset({"page", "sort", "limit", "fields"})

COMPARATORS = {
    "eq": lambda column, value: column == value,
    "gte": lambda column, value: column >= value,
    "gt": lambda column, value: column > value,
    "lte": lambda column, value: column <= value,
    "lt": lambda column, value: column < value,
}

_FILTER_KEY = re.compile(r"^(?P<field>[A-Za-z_][A-Za-z0-9_]*)(?:\[(?P<op>gte|gt|lte|lt)\])?$")

# Largest value an SQLite INTEGER (and a LIMIT/OFFSET) can hold
SQL_INTEGER_MAX = 2**63 - 1


@dataclass(frozen=True)
class FilterClause:
    field: str
    op: str
    value: str


@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = False


DEFAULT_SORT = (SortKey("created_at", descending=True),)


@dataclass(frozen=True)
class QuerySpec:
    """Side-effect-free description of a collection read."""

    filters: tuple[FilterClause, ...] = ()
    sort: tuple[SortKey, ...] = DEFAULT_SORT
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    page: int = 1
    limit: int = 100

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def where_clauses(self, model, fields: Collection[str]) -> list:
        """Build one SQL condition per filter, for the given model."""
        columns = model.__table__.columns
        clauses = []
        for clause in self.filters:
            column = columns.get(clause.field)
            if column is None or clause.field not in fields:
                clauses.append(false())
                continue
            value = _coerce(column, clause.field, clause.value)
            clauses.append(COMPARATORS[clause.op](column, value))
        return clauses

    def order_by(self, model, fields: Collection[str]) -> list:
        columns = model.__table__.columns
        ordering = []
        for key in self.sort:
            column = columns.get(key.field)
            if column is None or key.field not in fields:
                raise ValidationError(f"Cannot sort by unknown field '{key.field}'")
            ordering.append(column.desc() if key.descending else column.asc())
        if not any(key.field == "id" for key in self.sort):
            ordering.append(columns["id"].asc())
        return ordering

    def check_projection(self, fields: Collection[str]) -> None:
        for field in self.include + self.exclude:
            if field not in fields:
                raise ValidationError(f"Cannot select unknown field '{field}'")

    def apply(self, stmt: Select, model, fields: Collection[str]) -> Select:
        """Compose filters, ordering and the page window onto a Select."""
        self.check_projection(fields)
        for condition in self.where_clauses(model, fields):
            stmt = stmt.where(condition)
        stmt = stmt.order_by(*self.order_by(model, fields))
        if self.offset > SQL_INTEGER_MAX:
            # No table holds that many rows: the page is empty
            return stmt.where(false())
        return stmt.offset(self.offset).limit(self.limit)

    def project(self, row: dict) -> dict:
        """Trim a serialized row down to the requested fields."""
        if self.include:
            return {k: v for k, v in row.items() if k == "id" or k in self.include}
        if self.exclude:
            return {k: v for k, v in row.items() if k not in self.exclude}
        return row


def _coerce(column, field: str, raw: str):
    """Convert a query-string value to the Python type of a column."""
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return raw

    try:
        if python_type is bool:
            lowered = raw.lower()
            if lowered in ("true", "1"):
                return True
            if lowered in ("false", "0"):
                return False
            raise ValueError(raw)
        if python_type is datetime:
            return datetime.fromisoformat(raw)
        if python_type is date:
            return date.fromisoformat(raw)
        if python_type is uuid.UUID:
            return uuid.UUID(raw)
        value = python_type(raw)
        if python_type is int and not -SQL_INTEGER_MAX - 1 <= value <= SQL_INTEGER_MAX:
            raise ValueError(raw)
        return value
    except (ValueError, TypeError):
        raise ValidationError(f"Invalid value '{raw}' for field '{field}'")


def _parse_positive_int(name: str, raw: str | None, default: int) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"'{name}' must be an integer")
    if value < 1:
        raise ValidationError(f"'{name}' must be at least 1")
    return value


def _split(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def parse_query_params(
    params: Mapping[str, str],
    default_limit: int = 100,
    max_limit: int = 1000,
) -> QuerySpec:
    """
    Parse a flat query-parameter mapping into a QuerySpec.

    Args:
        params: Query parameters (e.g. request.query_params).
        default_limit: Page size when `limit` is absent.
        max_limit: Largest accepted `limit`.

    Raises:
        ValidationError: If page/limit are not positive integers, limit is
                         above max_limit, or fields mixes includes and
                         excludes.
    """
    filters = []
    for key, value in params.items():
        if key in RESERVED_PARAMS:
            continue
        match = _FILTER_KEY.match(key)
        if match is None:
            # Not a recognised field/comparator shape: keep it as an exact
            # match so the caller sees an empty result, not a silent no-op
            filters.append(FilterClause(field=key, op="eq", value=value))
            continue
        filters.append(
            FilterClause(field=match["field"], op=match["op"] or "eq", value=value)
        )

    sort_fields = _split(params.get("sort"))
    if sort_fields:
        sort = tuple(
            SortKey(field[1:], descending=True) if field.startswith("-") else SortKey(field)
            for field in sort_fields
        )
    else:
        sort = DEFAULT_SORT

    include, exclude = [], []
    for field in _split(params.get("fields")):
        if field.startswith("-"):
            exclude.append(field[1:])
        else:
            include.append(field)
    if include and exclude:
        raise ValidationError("'fields' cannot mix included and excluded fields")

    page = _parse_positive_int("page", params.get("page"), 1)
    limit = _parse_positive_int("limit", params.get("limit"), default_limit)
    if limit > max_limit:
        raise ValidationError(f"'limit' cannot be greater than {max_limit}")

    return QuerySpec(
        filters=tuple(filters),
        sort=sort,
        include=tuple(include),
        exclude=tuple(exclude),
        page=page,
        limit=limit,
    )
