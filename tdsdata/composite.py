"""A data source that chains several sources, each holding a later span of history."""

from __future__ import annotations

import logging
from io import UnsupportedOperation
from typing import Iterable

from .models import BaseDataSource, Record

log = logging.getLogger(__name__)


class CompositeDataSource(BaseDataSource):
    """Reads through sub-sources in order; later sources continue after earlier ones.

    The smallest period is one minute, so continuing one millisecond after the
    last record read never skips data.
    """

    def __init__(self, sources: Iterable[BaseDataSource] = ()):
        self._sources: list[BaseDataSource] = list(sources)

    def add_sub_datasource(self, ds: BaseDataSource) -> None:
        """Add a source holding data later than the ones already added."""
        self._sources.append(ds)

    def get_data(self, security, period) -> list[Record]:
        result: list[Record] = []
        start_date = 0
        for ds in self._sources:
            result.extend(ds.get_range_data(security, period, start_date, 0))
            if result:
                start_date = result[-1].date + 1
        return result

    def get_data_ex(self, security, period, start_date, count) -> list[Record]:
        result: list[Record] = []
        remaining = count
        for ds in self._sources:
            data = ds.get_data_ex(security, period, start_date, remaining)
            result.extend(data)
            if result:
                start_date = result[-1].date + 1
            remaining -= len(data)
            if remaining <= 0:
                break
        return result[:max(count, 0)]

    def get_range_data(self, security, period, start_date, end_date) -> list[Record]:
        result: list[Record] = []
        for ds in self._sources:
            data = ds.get_range_data(security, period, start_date, end_date)
            log.debug("range %s..%s gave %d records", start_date, end_date, len(data))
            result.extend(data)
            if result:
                start_date = result[-1].date + 1
        return result

    def get_data_from_last(self, security, period, end_date, count) -> list[Record]:
        result: list[Record] = []
        remaining = count
        for ds in reversed(self._sources):
            data = ds.get_data_from_last(security, period, end_date, remaining)
            result[:0] = data
            if result:
                # end dates are inclusive
                end_date = result[0].date - 1
            remaining -= len(data)
            if remaining <= 0:
                break
        return result[-count:] if count > 0 else []

    def get_last_record(self, security, period) -> Record | None:
        for ds in reversed(self._sources):
            record = ds.get_last_record(security, period)
            if record is not None:
                return record
        return None

    def append_data(self, security, period, data) -> None:
        raise UnsupportedOperation("composite data source is read-only")

    def save_data(self, security, period, data) -> None:
        raise UnsupportedOperation("composite data source is read-only")

    def remove_data(self, security, period, start_date, end_date) -> None:
        raise UnsupportedOperation("composite data source is read-only")