"""Process-level adapters: wall clock in the configured zone and random ids."""
from __future__ import annotations

import uuid
from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from taskhub.domain.common.ports import Clock, IdGenerator


def load_zone(tz_name: str) -> tzinfo:
    """IANA zone for ``tz_name``; an unknown name fails at startup, not on first use."""
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise RuntimeError(f"TZ is not a known time zone: {tz_name!r}") from None


class SystemClock(Clock):
    def __init__(self, tz_name: str = "UTC") -> None:
        self._tz = load_zone(tz_name)

    @property
    def tz(self) -> tzinfo:
        """Zone used to read dates given without an offset (due dates, filters)."""
        return self._tz

    def now(self) -> datetime:
        return datetime.now(self._tz)


class UuidGenerator(IdGenerator):
    def new_id(self) -> str:
        return str(uuid.uuid4())
