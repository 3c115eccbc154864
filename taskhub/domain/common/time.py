from __future__ import annotations

import re
from datetime import datetime, timezone, tzinfo
from typing import Optional, Union

from taskhub.domain.common.errors import BadRequestError

_DD_MM_YYYY = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$")

INVALID_DUE_DATE = "Invalid date format for dueDate. Use formats like YYYY-MM-DD or DD-MM-YYYY"


def ensure_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return dt


def to_iso(dt: datetime) -> str:
    ensure_aware(dt)
    # fixed-width UTC so stored values sort lexically in time order
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_iso(s: str) -> datetime:
    return datetime.fromisoformat(s)


def opt_to_iso(dt: Optional[datetime]) -> Optional[str]:
    return to_iso(dt) if dt is not None else None


def opt_from_iso(s: Optional[str]) -> Optional[datetime]:
    return from_iso(s) if s else None


def parse_due_date(value: Union[str, datetime, None], tz: tzinfo) -> Optional[datetime]:
    """
    Normalize a due date to an aware instant.

    Accepts DD-MM-YYYY (midnight in ``tz``), ISO-8601 (naive values are read
    in ``tz``) or a datetime. Empty input means no due date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=tz)

    raw = value.strip()
    if not raw:
        return None

    m = _DD_MM_YYYY.match(raw)
    if m:
        day, month, year = (int(g) for g in m.groups())
        try:
            return datetime(year, month, day, tzinfo=tz)
        except ValueError:
            raise BadRequestError(INVALID_DUE_DATE, fields={"dueDate": INVALID_DUE_DATE}) from None

    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise BadRequestError(INVALID_DUE_DATE, fields={"dueDate": INVALID_DUE_DATE}) from None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=tz)
