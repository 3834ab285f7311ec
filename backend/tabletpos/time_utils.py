from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today_iso() -> str:
    """Local business date as 'YYYY-MM-DD' (the form sales are bucketed by)."""
    return date.today().isoformat()


def normalize_sale_date(value) -> str:
    """
    Normalize a sale date to the canonical 'YYYY-MM-DD' string.

    Sale dates are compared as strings in range queries, so every stored
    value must have exactly this shape.

    Accepts None (today), date/datetime objects, or ISO strings (a time
    component is dropped). Raises ValueError for anything else.
    """
    if value is None:
        return today_iso()
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        s = value.strip()
        if not s:
            raise ValueError("invalid sale date")
        return date.fromisoformat(s[:10]).isoformat()
    raise ValueError("invalid sale date")


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
