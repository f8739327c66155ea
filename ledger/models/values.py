"""
Value Normalization and Purchase Materialization

The graph store hands back whatever its driver decided a value is:
Python ints for Cypher Integers, floats for Floats, neo4j.time
temporals for DateTime properties, None for empty aggregates. Reports
must never fail because of that drift, so every value the ledger reads
goes through one of the functions below.

Rules:
- Numbers: Integer | Float | Decimal in, float out. Anything else
  (None, booleans, strings, non-finite values) normalizes to 0.0.
- Timestamps: neo4j temporal | datetime | date | ISO string in,
  timezone-aware UTC datetime out. Missing or unreadable values fall
  back to the current time.
"""

import math
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from ledger.models.purchase import Purchase


StoreNumber = Union[int, float, Decimal]


def to_float(value: Any) -> float:
    """Normalize a store numeric to a plain float (0.0 when unusable)."""
    if value is None or isinstance(value, bool):
        return 0.0
    if not isinstance(value, (int, float, Decimal)):
        return 0.0
    try:
        result = float(value)
    except (OverflowError, ValueError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def to_count(value: Any) -> int:
    """Normalize a store count to an int."""
    return int(to_float(value))


def to_datetime(value: Any) -> datetime:
    """Normalize a store temporal to an aware UTC datetime."""
    if value is None:
        return datetime.now(timezone.utc)

    # neo4j.time.DateTime / Date expose to_native()
    to_native = getattr(value, "to_native", None)
    if callable(to_native):
        value = to_native()

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return datetime.now(timezone.utc)
        return to_datetime(parsed)
    return datetime.now(timezone.utc)


def to_iso(value: Union[datetime, date, str]) -> str:
    """Render a caller timestamp as the UTC ISO string passed to datetime()."""
    return to_datetime(value).isoformat()


def _properties(node: Any) -> dict:
    if node is None:
        return {}
    if isinstance(node, Mapping):
        return dict(node)
    items = getattr(node, "items", None)
    if callable(items):
        return dict(items())
    raise TypeError(f"Cannot read properties from {type(node).__name__}")


def materialize_purchase(
    row: Mapping[str, Any],
    user_id: Optional[str] = None,
    node_key: str = "p",
) -> Purchase:
    """
    Build a Purchase from a result row.

    The row carries the purchase node under node_key and the linked
    category id under "categoryId" (None when there is no BELONGS_TO).
    """
    props = _properties(row.get(node_key))
    if not props.get("id"):
        raise ValueError("Purchase node has no id")

    tags = props.get("tags")
    return Purchase(
        id=str(props["id"]),
        description=props.get("description") or "",
        price=to_float(props.get("price")),
        date=to_datetime(props.get("date")),
        tags=[str(tag) for tag in tags] if isinstance(tags, (list, tuple)) else [],
        user_id=user_id,
        category_id=row.get("categoryId"),
        created_at=to_datetime(props.get("createdAt")),
        updated_at=to_datetime(props.get("updatedAt")),
    )
