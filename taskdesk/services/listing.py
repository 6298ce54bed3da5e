"""
Query-string driven listing: filters, role scoping, sort and pagination.

Query parameters arrive flat, e.g.::

    ?startDate[gt]=2024-01-01&isCompleted=false&sort=-createdAt,name&page=2&limit=5

and are turned into a filter spec shaped like a document-store query::

    {"startDate": {"$gt": "2024-01-01"}, "isCompleted": "false"}

which is then compiled against an explicit allow-list of columns. Fields
outside the allow-list never reach SQL, and only the comparison operators
in ``OPERATORS`` are accepted, so arbitrary operators cannot be injected.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from taskdesk.core.exceptions import BadRequest
from taskdesk.models.user import User

logger = logging.getLogger(__name__)

RESERVED_PARAMS = frozenset({"sort", "page", "limit"})

OPERATORS = {
    "gt": "$gt",
    "gte": "$gte",
    "lt": "$lt",
    "lte": "$lte",
    "in": "$in",
}

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

# field, field[op] or field.op; the operator is always a whole token
_KEY_RE = re.compile(
    r"^(?P<field>[A-Za-z_][A-Za-z0-9_]*)"
    r"(?:\[(?P<bracket>[A-Za-z_]*)\]|\.(?P<dot>[A-Za-z_]+))?$"
)

FilterSpec = dict[str, Any]


# ── Parsing ─────────────────────────────────────────────────────────
def parse_filters(params: Iterable[tuple[str, str]]) -> FilterSpec:
    """Build a filter spec from ``(key, value)`` query pairs.

    Reserved control parameters are skipped. Repeated ``in`` keys and comma
    separated ``in`` values accumulate into one list.
    """
    spec: FilterSpec = {}
    for key, value in params:
        if key in RESERVED_PARAMS:
            continue
        match = _KEY_RE.match(key)
        if match is None:
            logger.debug("Ignoring malformed filter parameter %r", key)
            continue

        name = match["field"]
        token = match["bracket"] if match["bracket"] is not None else match["dot"]

        if token is None:
            current = spec.get(name)
            if isinstance(current, dict):
                current["$eq"] = value
            else:
                spec[name] = value
            continue

        op = OPERATORS.get(token)
        if op is None:
            raise BadRequest(f"Unsupported filter operator '{token}' on '{name}'")

        current = spec.get(name)
        if not isinstance(current, dict):
            current = {} if current is None else {"$eq": current}
            spec[name] = current

        if op == "$in":
            values = [v.strip() for v in value.split(",") if v.strip()]
            current.setdefault("$in", []).extend(values)
        else:
            current[op] = value
    return spec


def _coerce(raw: Any, python_type: type, name: str) -> Any:
    if python_type is bool:
        lowered = str(raw).strip().lower()
        if lowered in ("true", "1"):
            return True
        if lowered in ("false", "0"):
            return False
        raise BadRequest(f"'{name}' expects true or false")
    if python_type is int:
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise BadRequest(f"'{name}' expects an integer") from None
    if python_type is datetime:
        try:
            value = datetime.fromisoformat(str(raw).strip())
        except ValueError:
            raise BadRequest(f"'{name}' expects an ISO-8601 date") from None
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return str(raw)


def compile_filters(spec: FilterSpec, fields: Mapping[str, InstrumentedAttribute]) -> list:
    """Translate a filter spec into SQLAlchemy where-clauses."""
    clauses = []
    for name, condition in spec.items():
        column = fields.get(name)
        if column is None:
            logger.debug("Ignoring filter on non-filterable field %r", name)
            continue

        python_type = column.property.columns[0].type.python_type
        if not isinstance(condition, dict):
            condition = {"$eq": condition}

        for op, raw in condition.items():
            if op == "$in":
                values = [_coerce(v, python_type, name) for v in raw]
                clauses.append(column.in_(values))
                continue
            value = _coerce(raw, python_type, name)
            if op == "$eq":
                clauses.append(column == value)
            elif op == "$gt":
                clauses.append(column > value)
            elif op == "$gte":
                clauses.append(column >= value)
            elif op == "$lt":
                clauses.append(column < value)
            elif op == "$lte":
                clauses.append(column <= value)
            else:
                raise BadRequest(f"Unsupported filter operator '{op}' on '{name}'")
    return clauses


def parse_sort(raw: str | None, fields: Mapping[str, InstrumentedAttribute], default: str) -> list:
    """``"-createdAt,name"`` -> ``[created_at DESC, name ASC]``. Unknown fields are dropped."""
    order = []
    for part in (raw or "").split(","):
        part = part.strip()
        descending = part.startswith("-")
        column = fields.get(part.lstrip("-+"))
        if column is None:
            continue
        order.append(column.desc() if descending else column.asc())
    if not order and default:
        return parse_sort(default, fields, "")
    return order


def _positive_int(raw: str | None, default: int) -> int:
    try:
        value = int(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def parse_pagination(page: str | None, limit: str | None) -> tuple[int, int]:
    """Lenient page/limit parsing; anything unusable falls back to the defaults."""
    return _positive_int(page, DEFAULT_PAGE), min(_positive_int(limit, DEFAULT_LIMIT), MAX_LIMIT)


def build_pagination(page: int, limit: int, total: int) -> dict[str, dict[str, int]]:
    pagination: dict[str, dict[str, int]] = {}
    if page * limit < total:
        pagination["next"] = {"page": page + 1, "limit": limit}
    if (page - 1) * limit > 0:
        pagination["prev"] = {"page": page - 1, "limit": limit}
    return pagination


# ── Execution ───────────────────────────────────────────────────────
@dataclass
class Page:
    items: list
    total: int
    page: int
    limit: int

    @property
    def pagination(self) -> dict[str, dict[str, int]]:
        return build_pagination(self.page, self.limit, self.total)


@dataclass
class ListQuery:
    """A reusable, allow-listed listing over one model.

    ``owner`` names the column that scopes rows to non-admin requesters;
    leave it ``None`` for admin-only resources.
    """

    model: type
    fields: Mapping[str, InstrumentedAttribute]
    default_sort: str = "-createdAt"
    owner: InstrumentedAttribute | None = None
    options: Sequence = field(default_factory=tuple)

    def where(self, params: Sequence[tuple[str, str]], requester: User) -> list:
        clauses = compile_filters(parse_filters(params), self.fields)
        if self.owner is not None and not requester.is_admin:
            # ANDed on top of any caller filter, so it can only narrow
            clauses.append(self.owner == requester.id)
        return clauses

    async def execute(
        self,
        db: AsyncSession,
        params: Sequence[tuple[str, str]],
        requester: User,
    ) -> Page:
        control = {k: v for k, v in params if k in RESERVED_PARAMS}
        page, limit = parse_pagination(control.get("page"), control.get("limit"))
        clauses = self.where(params, requester)

        total = await db.scalar(select(func.count()).select_from(self.model).where(*clauses)) or 0

        order = parse_sort(control.get("sort"), self.fields, self.default_sort)
        stmt = (
            select(self.model)
            .where(*clauses)
            .order_by(*order, self.model.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .options(*self.options)
        )
        result = await db.execute(stmt)
        return Page(items=list(result.scalars().all()), total=total, page=page, limit=limit)
