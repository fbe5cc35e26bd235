"""Bar periods and calendar helpers over millisecond timestamps."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import IntEnum

LOCAL_TZ = timezone(timedelta(hours=8))


class PeriodUnit(IntEnum):
    MINUTE = 1
    DAY = 2
    WEEK = 3
    MONTH = 4
    QUARTER = 5
    YEAR = 6


_SHORT = {
    PeriodUnit.MINUTE: "M",
    PeriodUnit.DAY: "D",
    PeriodUnit.WEEK: "W",
    PeriodUnit.MONTH: "MN",
    PeriodUnit.QUARTER: "Q",
    PeriodUnit.YEAR: "Y",
}

_PREFIXES = {name: unit for unit, name in _SHORT.items()}
_PREFIXES.update({unit.name: unit for unit in PeriodUnit})

_PATTERN = re.compile(
    "^(" + "|".join(sorted(_PREFIXES, key=len, reverse=True)) + r")(\d+)$"
)

# Target units a differing source unit can be aggregated into.
_CROSS_UNIT = {
    PeriodUnit.MINUTE: {PeriodUnit.DAY},
    PeriodUnit.DAY: {PeriodUnit.WEEK, PeriodUnit.MONTH, PeriodUnit.QUARTER, PeriodUnit.YEAR},
    PeriodUnit.MONTH: {PeriodUnit.QUARTER, PeriodUnit.YEAR},
    PeriodUnit.QUARTER: {PeriodUnit.YEAR},
}


@dataclass(frozen=True, order=True)
class Period:
    """A bar period: a unit and a count of units."""

    unit: PeriodUnit
    count: int = 1

    def __post_init__(self):
        if self.count <= 0:
            raise ValueError("period count must be positive")

    @property
    def short_name(self) -> str:
        return f"{_SHORT[self.unit]}{self.count}"

    @property
    def name(self) -> str:
        return f"{self.unit.name}{self.count}"

    def __str__(self) -> str:
        return self.short_name

    def can_convert_to(self, other: Period) -> bool:
        """Whether records of this period can be aggregated into ``other``."""
        if self.unit == other.unit:
            return other.count % self.count == 0
        return other.unit in _CROSS_UNIT.get(self.unit, set()) and other.count == 1


def period_from_string(text: str) -> Period:
    """Parse names such as M1, M5, D1, MINUTE5, DAY1."""
    match = _PATTERN.match(text.strip().upper())
    if not match:
        raise ValueError(f"bad period: {text!r}")
    return Period(_PREFIXES[match.group(1)], int(match.group(2)))


PERIOD_M = Period(PeriodUnit.MINUTE, 1)
PERIOD_M5 = Period(PeriodUnit.MINUTE, 5)
PERIOD_M15 = Period(PeriodUnit.MINUTE, 15)
PERIOD_D = Period(PeriodUnit.DAY, 1)


def _local(ts: int) -> datetime:
    return datetime.fromtimestamp(ts / 1000, LOCAL_TZ)


def date_day(ts: int) -> int:
    """The local day of a timestamp as YYYYMMDD."""
    d = _local(ts)
    return d.year * 10000 + d.month * 100 + d.day


def day_timestamp(ts: int) -> int:
    """The timestamp of the start of the local day."""
    d = _local(ts).replace(hour=0, minute=0, second=0, microsecond=0)
    return int(d.timestamp()) * 1000


def date_week(ts: int) -> int:
    """The ISO week of a timestamp as YYYYWW."""
    year, week, _ = _local(ts).isocalendar()
    return year * 100 + week


def date_month(ts: int) -> int:
    """The month of a timestamp as YYYYMM."""
    d = _local(ts)
    return d.year * 100 + d.month


def date_quarter(ts: int) -> int:
    """The quarter of a timestamp as YYYYQ."""
    d = _local(ts)
    return d.year * 10 + (d.month - 1) // 3 + 1


def date_year(ts: int) -> int:
    return _local(ts).year