"""A data source whose history is stitched from ranges of other securities."""

from __future__ import annotations

from io import UnsupportedOperation

from .models import BaseDataSource, DateRange, DateRangeMapper, Record

_OPEN_END = 2**63 - 1


class MappedDataSource(BaseDataSource):
    """Maps a security to date ranges of target securities and reads those."""

    def __init__(self, mapper: DateRangeMapper | None = None, target: BaseDataSource | None = None):
        self.mapper = mapper
        self.target = target

    def set_mapper(self, mapper: DateRangeMapper) -> None:
        self.mapper = mapper

    def set_target_data_source(self, ds: BaseDataSource) -> None:
        self.target = ds

    def _ranges(self, security) -> list[DateRange]:
        if self.mapper is None or self.target is None:
            raise RuntimeError("mapper and target data source must be set")
        return sorted(self.mapper.map_date_ranges(security), key=lambda r: r.start_date)

    def get_data(self, security, period) -> list[Record]:
        result: list[Record] = []
        for r in self._ranges(security):
            end = r.end_date - 1 if r.end_date else 0
            result.extend(self.target.get_range_data(r.security, period, r.start_date, end))
        return result

    def get_range_data(self, security, period, start_date, end_date) -> list[Record]:
        ranges = self._ranges(security)
        end_date = end_date or _OPEN_END
        result: list[Record] = []
        for r in ranges:
            range_end = r.end_date or _OPEN_END
            start = max(r.start_date, start_date)
            end = min(range_end - 1, end_date)
            if start > end:
                continue
            result.extend(self.target.get_range_data(r.security, period, start, end))
        return result

    def get_data_ex(self, security, period, start_date, count) -> list[Record]:
        return self.get_range_data(security, period, start_date, 0)[:max(count, 0)]

    def get_data_from_last(self, security, period, end_date, count) -> list[Record]:
        data = self.get_range_data(security, period, 0, end_date)
        return data[-count:] if count > 0 else []

    def get_last_record(self, security, period) -> Record | None:
        data = self.get_data_from_last(security, period, 0, 1)
        return data[0] if data else None

    def append_data(self, security, period, data) -> None:
        raise UnsupportedOperation("mapped data source is read-only")

    def save_data(self, security, period, data) -> None:
        raise UnsupportedOperation("mapped data source is read-only")

    def remove_data(self, security, period, start_date, end_date) -> None:
        raise UnsupportedOperation("mapped data source is read-only")