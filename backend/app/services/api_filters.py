"""
Query-string driven filtering, sorting, projection, search and pagination.

`build_query_spec` turns a flat mapping of query parameters into an immutable
`QuerySpec` by running five pure stages in a fixed order:

    filter -> sort -> fields -> search -> pagination

`compile_select` turns the `QuerySpec` into a SQLAlchemy `Select` and `project`
applies the field projection to serialized rows. Nothing here raises on bad
input: unknown fields or uncoercible values yield an empty result, bad sort or
projection names are ignored, bad page/limit values fall back to defaults and oversized ones are capped.

Examples (model = Job):
    salary[gte]=50000&jobType=Full-Time   -> salary >= 50000 AND job_type = 'Full-Time'
    industry[in]=Banking,Business         -> industry contains either value
    sort=-salary,title                    -> ORDER BY salary DESC, title ASC, id ASC
    q=node-developer                      -> phrase "node developer" in title/description/company
    page=3&limit=5                        -> OFFSET 10 LIMIT 5
"""
import logging
import math
import operator
import re
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping

from sqlalchemy import JSON, Boolean, Date, DateTime, Float, Integer, Numeric, String, cast, false, inspect, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

logger = logging.getLogger(__name__)

RESERVED_KEYS = frozenset({"sort", "fields", "q", "limit", "page"})
COMPARISON_OPERATORS = frozenset({"gt", "gte", "lt", "lte", "in"})
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 1000
MAX_PAGE = 1_000_000
DEFAULT_SORT_FIELD = "posting_date"
# Bounds of a 64-bit SQL INTEGER.
_INT_MIN, _INT_MAX = -(2**63), 2**63 - 1

# `salary`, `salary[gt]`, `salary[$gt]`
_KEY_PATTERN = re.compile(r"^(?P<field>[A-Za-z_][A-Za-z0-9_]*)(?:\[\$?(?P<op>[A-Za-z]+)\])?$")
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

_COMPARATORS = {
    "eq": operator.eq,
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}


class _Uncoercible(ValueError):
    pass


@dataclass(frozen=True)
class FieldCondition:
    field: str  # model attribute name
    op: str  # eq / gt / gte / lt / lte / in
    value: Any  # coerced value; tuple for `in`


@dataclass(frozen=True)
class QuerySpec:
    filters: tuple[FieldCondition, ...] = ()
    # Set when a constraint can never match (unknown field, bad value).
    impossible: bool = False
    order_by: tuple[tuple[str, bool], ...] = ()  # (field, descending)
    fields: tuple[str, ...] | None = None
    search: str | None = None
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# -------------------- field resolution --------------------


def to_snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def _columns(model) -> dict:
    return {c.key: c for c in inspect(model).columns}


def _hidden(model) -> frozenset[str]:
    return frozenset(getattr(model, "__hidden_fields__", ()))


def resolve_field(model, name: str) -> str | None:
    """Map an API field name (camelCase or snake_case) onto a model attribute."""
    if not name:
        return None
    columns = _columns(model)
    hidden = _hidden(model)
    for candidate in (name, to_snake_case(name)):
        if candidate in hidden:
            return None
        if candidate in columns:
            return candidate
    return None


# -------------------- value coercion --------------------


def _is_list_column(column) -> bool:
    return isinstance(column.type, JSON)


def _parse_datetime(raw: str) -> datetime:
    try:
        value = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        raise _Uncoercible(raw) from None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_number(text: str) -> float:
    try:
        number = float(text)
    except ValueError:
        raise _Uncoercible(text) from None
    if not math.isfinite(number):
        raise _Uncoercible(text)
    return number


def coerce_value(column, raw: Any) -> Any:
    text = str(raw).strip()
    col_type = column.type
    if _is_list_column(column):
        return text
    if isinstance(col_type, Boolean):
        lowered = text.lower()
        if lowered in {"true", "1", "yes"}:
            return True
        if lowered in {"false", "0", "no"}:
            return False
        raise _Uncoercible(text)
    if isinstance(col_type, Integer):
        number = _parse_number(text)
        if not number.is_integer():
            return number
        value = int(number)
        if not _INT_MIN <= value <= _INT_MAX:
            raise _Uncoercible(text)
        return value
    if isinstance(col_type, (Float, Numeric)):
        return _parse_number(text)
    if isinstance(col_type, DateTime):
        return _parse_datetime(text)
    if isinstance(col_type, Date):
        try:
            return date.fromisoformat(text)
        except ValueError:
            raise _Uncoercible(text) from None
    return text


# -------------------- pipeline stages --------------------


def parse_filter_key(key: str) -> tuple[str, str] | None:
    """`salary[gt]` -> ("salary", "gt"); `title` -> ("title", "eq")."""
    m = _KEY_PATTERN.match(key or "")
    if not m:
        return None
    op = (m.group("op") or "eq").lower()
    if op != "eq" and op not in COMPARISON_OPERATORS:
        return None
    return m.group("field"), op


def apply_filter(spec: QuerySpec, params: Mapping[str, Any], model) -> QuerySpec:
    columns = _columns(model)
    conditions: list[FieldCondition] = []
    impossible = spec.impossible

    for key, raw in params.items():
        if key in RESERVED_KEYS:
            continue
        parsed = parse_filter_key(key)
        field = resolve_field(model, parsed[0]) if parsed else None
        if parsed is None or field is None:
            logger.debug("Ignoring unmatched filter key %r; result will be empty", key)
            impossible = True
            continue

        op = parsed[1]
        column = columns[field]
        try:
            if op == "in":
                parts = [p for p in str(raw).split(",") if p.strip()]
                value: Any = tuple(coerce_value(column, p) for p in parts)
            else:
                if _is_list_column(column) and op != "eq":
                    raise _Uncoercible(str(raw))
                value = coerce_value(column, raw)
        except _Uncoercible:
            impossible = True
            continue
        conditions.append(FieldCondition(field=field, op=op, value=value))

    return replace(spec, filters=spec.filters + tuple(conditions), impossible=impossible)


def apply_sort(spec: QuerySpec, params: Mapping[str, Any], model) -> QuerySpec:
    columns = _columns(model)
    order: list[tuple[str, bool]] = []
    raw = str(params.get("sort") or "").strip()

    for token in re.split(r"[,\s]+", raw):
        if not token:
            continue
        descending = token.startswith("-")
        field = resolve_field(model, token.lstrip("-+"))
        if field is None or field not in columns or any(f == field for f, _ in order):
            continue
        order.append((field, descending))

    if not order:
        default = DEFAULT_SORT_FIELD if DEFAULT_SORT_FIELD in columns else "id"
        order.append((default, False))
    # Stable tiebreaker so identical requests return identical pages.
    if not any(f == "id" for f, _ in order):
        order.append(("id", False))

    return replace(spec, order_by=tuple(order))


def apply_fields(spec: QuerySpec, params: Mapping[str, Any], model) -> QuerySpec:
    raw = str(params.get("fields") or "").strip()
    if not raw:
        return replace(spec, fields=None)

    selected: list[str] = []
    for token in raw.split(","):
        field = resolve_field(model, token.strip())
        if field and field not in selected:
            selected.append(field)
    # Asking only for unknown fields behaves like asking for the defaults.
    return replace(spec, fields=tuple(selected) if selected else None)


def apply_search(spec: QuerySpec, params: Mapping[str, Any], model) -> QuerySpec:
    raw = str(params.get("q") or "").strip()
    if not raw or not getattr(model, "__search_fields__", ()):
        return spec
    phrase = " ".join(raw.replace("-", " ").split())
    return replace(spec, search=phrase or None)


def _positive_int(raw: Any, default: int, maximum: int) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    if value <= 0:
        return default
    return min(value, maximum)


def apply_pagination(spec: QuerySpec, params: Mapping[str, Any], model=None) -> QuerySpec:
    return replace(
        spec,
        page=_positive_int(params.get("page"), DEFAULT_PAGE, MAX_PAGE),
        limit=_positive_int(params.get("limit"), DEFAULT_LIMIT, MAX_LIMIT),
    )


def build_query_spec(model, params: Mapping[str, Any]) -> QuerySpec:
    spec = QuerySpec()
    spec = apply_filter(spec, params, model)
    spec = apply_sort(spec, params, model)
    spec = apply_fields(spec, params, model)
    spec = apply_search(spec, params, model)
    spec = apply_pagination(spec, params, model)
    return spec


# -------------------- compilation --------------------


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _list_contains(column, value: str):
    needle = f'%"{_escape_like(value)}"%'
    return cast(column, String).like(needle, escape="\\")


def _condition_clause(model, cond: FieldCondition):
    column = getattr(model, cond.field)
    is_list = _is_list_column(_columns(model)[cond.field])

    if cond.op == "in":
        if not cond.value:
            return false()
        if is_list:
            return or_(*[_list_contains(column, v) for v in cond.value])
        return column.in_(list(cond.value))

    if is_list:
        return _list_contains(column, cond.value)
    return _COMPARATORS[cond.op](column, cond.value)


def search_clause(model, phrase: str):
    pattern = f"%{_escape_like(phrase)}%"
    return or_(*[
        getattr(model, name).ilike(pattern, escape="\\")
        for name in model.__search_fields__
    ])


def compile_select(model, spec: QuerySpec) -> Select:
    stmt = select(model)
    if spec.impossible:
        stmt = stmt.where(false())
    for cond in spec.filters:
        stmt = stmt.where(_condition_clause(model, cond))
    if spec.search:
        stmt = stmt.where(search_clause(model, spec.search))

    ordering = []
    for field, descending in spec.order_by:
        column = getattr(model, field)
        ordering.append(column.desc() if descending else column.asc())
    return stmt.order_by(*ordering).offset(spec.offset).limit(spec.limit)


def project(payload: dict, spec: QuerySpec, hidden: Iterable[str] = ()) -> dict:
    """Apply the field projection to one serialized row; `id` is always kept."""
    if spec.fields is None:
        hidden = set(hidden)
        return {k: v for k, v in payload.items() if k not in hidden}
    keep = {"id", *spec.fields}
    return {k: v for k, v in payload.items() if k in keep}


def run_query(db: Session, model, params: Mapping[str, Any]) -> tuple[list, QuerySpec]:
    spec = build_query_spec(model, params)
    rows = list(db.execute(compile_select(model, spec)).scalars().all())
    return rows, spec
