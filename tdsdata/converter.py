"""Conversion of record series between periods and forward price adjustment."""

from __future__ import annotations

from dataclasses import replace
from itertools import groupby
from typing import Callable, Iterable

from .models import InfoExItem, Record, round_to
from .period import (
    Period,
    PeriodUnit,
    date_day,
    date_month,
    date_quarter,
    date_week,
    date_year,
    day_timestamp,
)


def merge_data(dest_data: list[Record], source_data: Iterable[Record], multiplier: int) -> list[Record]:
    """Append ``source_data`` to ``dest_data`` merging every ``multiplier`` records into one."""
    for i, r in enumerate(source_data):
        if i % multiplier == 0:
            dest_data.append(replace(r))
            continue
        dr = dest_data[-1]
        dr.close = r.close
        dr.low = min(dr.low, r.low)
        dr.high = max(dr.high, r.high)
        dr.date = r.date
        dr.volume += r.volume
        dr.amount += r.amount
    return dest_data


class PeriodConverter:
    """Aggregates records of one period into a longer period."""

    def __init__(self, src_period: Period, dest_period: Period):
        if not src_period.can_convert_to(dest_period):
            raise ValueError(f"cannot convert {src_period} to {dest_period}")
        self.src_period = src_period
        self.dest_period = dest_period

    def _merge_groups(self, data, key: Callable[[int], int], multiplier=None, date_of=None):
        result: list[Record] = []
        for k, group in groupby(data, key=lambda r: key(r.date)):
            items = list(group)
            merge_data(result, items, multiplier or len(items))
            if date_of is not None:
                result[-1].date = date_of(k)
        return result

    def convert(self, source_data: list[Record]) -> list[Record]:
        src, dest = self.src_period, self.dest_period
        if src == dest:
            return source_data
        if src.unit == dest.unit:
            multiplier = dest.count // src.count
            if dest.unit == PeriodUnit.MINUTE:
                return self._merge_groups(source_data, date_day, multiplier)
            return merge_data([], source_data, multiplier)
        if src.unit == PeriodUnit.MINUTE and dest.unit == PeriodUnit.DAY:
            return self._merge_groups(source_data, day_timestamp, date_of=lambda k: k)
        keys = {
            PeriodUnit.WEEK: date_week,
            PeriodUnit.MONTH: date_month,
            PeriodUnit.QUARTER: date_quarter,
            PeriodUnit.YEAR: date_year,
        }
        if dest.unit in keys:
            return self._merge_groups(source_data, keys[dest.unit])
        raise ValueError("bad source period")


class ForwardAdjustConverter:
    """Adjusts prices before each ex-rights date (forward adjustment)."""

    def __init__(self, period: Period, items: Iterable[InfoExItem]):
        self.period = period
        self.items = sorted(items, key=lambda item: item.date)

    @staticmethod
    def _adjust(data: list[Record], item: InfoExItem) -> None:
        def price(p: float) -> float:
            value = ((p - item.bonus) + item.rationed_shares * item.rationed_share_price) / (
                1 + item.delivered_shares + item.rationed_shares
            )
            return round_to(value, 3)

        for r in data:
            if date_day(r.date) >= item.date:
                break
            r.open = price(r.open)
            r.close = price(r.close)
            r.low = price(r.low)
            r.high = price(r.high)

    def convert(self, source_data: list[Record]) -> list[Record]:
        if not source_data or not self.items:
            return source_data
        first = date_day(source_data[0].date)
        last = date_day(source_data[-1].date)
        if self.items[-1].date <= first:
            return source_data
        result = [replace(r) for r in source_data]
        for item in self.items:
            if item.date <= first:
                continue
            if item.date > last:
                break
            self._adjust(result, item)
        return result