# app/services/queries.py
"""Filter / sort / page translation onto Firestore queries."""
import logging
import math
from datetime import datetime, timezone
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from google.cloud.firestore_v1 import Query
from google.cloud.firestore_v1.base_query import FieldFilter
from pydantic import ValidationError

log = logging.getLogger(__name__)

DIRECTIONS = {"asc": Query.ASCENDING, "desc": Query.DESCENDING}


@dataclass
class Page:
    items: list = field(default_factory=list)
    page: int = 1
    limit: int = 50
    total_count: int = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit) if self.total_count else 0

    def pagination(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "totalCount": self.total_count,
            "totalPages": self.total_pages,
        }


def _store_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def apply_equality_filters(query, filters: dict[str, Any]):
    """AND together an `==` predicate for every filter that has a value."""
    for name, value in filters.items():
        if value is None or value == "":
            continue
        query = query.where(filter=FieldFilter(name, "==", _store_value(value)))
    return query


def _utc(value):
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def apply_range(query, field_path: str, start=None, end=None):
    start, end = _utc(start), _utc(end)
    if start is not None:
        query = query.where(filter=FieldFilter(field_path, ">=", start))
    if end is not None:
        query = query.where(filter=FieldFilter(field_path, "<=", end))
    return query


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def count(query) -> int:
    """Run a server-side count aggregation over `query`."""
    result = query.count(alias="total").get()
    return int(result[0][0].value) if result and result[0] else 0


def paginate(collection, filters: dict[str, Any], order_by: str, direction: str,
             page: int, limit: int, convert=None) -> Page:
    """Fetch one page of `collection` plus the exact match count.

    The count runs over the same filters without the offset/limit window, so
    totalPages is exact.
    """
    base = apply_equality_filters(collection, filters)
    query = base.order_by(order_by, direction=DIRECTIONS[direction])
    offset = page_offset(page, limit)
    if offset > 0:
        query = query.offset(offset)
    snaps = query.limit(limit).stream()
    items = [convert(s) if convert else s for s in snaps]
    return Page(items=items, page=page, limit=limit, total_count=count(base))


def stream_all(collection, convert=None, order_by: Optional[str] = None, direction: str = "desc"):
    """Every matching document. With `convert`, documents that fail
    validation are logged and left out."""
    query = collection
    if order_by:
        query = query.order_by(order_by, direction=DIRECTIONS[direction])
    if convert is None:
        return list(query.stream())
    items = []
    for snap in query.stream():
        try:
            items.append(convert(snap))
        except ValidationError as e:
            log.warning("Skipping malformed document %s: %s", snap.id, e.errors(include_url=False))
    return items
