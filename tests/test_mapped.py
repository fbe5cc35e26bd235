from datetime import datetime
from io import UnsupportedOperation

import pytest

from tdsdata.mapped import MappedDataSource
from tdsdata.models import BaseDataSource, DateRange, DateRangeMapper, Record, parse_security
from tdsdata.period import LOCAL_TZ, period_from_string


def ts(text):
    d = datetime.strptime(text, "%Y%m%d %H:%M:%S").replace(tzinfo=LOCAL_TZ)
    return int(d.timestamp()) * 1000


def minutes(first, count, close):
    start = ts(first)
    return [
        Record(date=start + i * 60_000, open=close, close=close, high=close, low=close, volume=1, amount=1)
        for i in range(count)
    ]


class _MemorySource(BaseDataSource):
    def __init__(self, data):
        self.data = data

    def _records(self, security):
        return self.data.get(str(security), [])

    def get_data(self, security, period):
        return list(self._records(security))

    def get_data_ex(self, security, period, start_date, count):
        return [r for r in self._records(security) if r.date >= start_date][:count]

    def get_range_data(self, security, period, start_date, end_date):
        return [
            r for r in self._records(security)
            if r.date >= start_date and (not end_date or r.date <= end_date)
        ]

    def get_data_from_last(self, security, period, end_date, count):
        data = [r for r in self._records(security) if not end_date or r.date <= end_date]
        return data[-count:]

    def get_last_record(self, security, period):
        records = self._records(security)
        return records[-1] if records else None

    def append_data(self, security, period, data):
        self.data.setdefault(str(security), []).extend(data)

    def save_data(self, security, period, data):
        self.data[str(security)] = list(data)

    def remove_data(self, security, period, start_date, end_date):
        self.data.pop(str(security), None)


SEP = "20180918 15:00:00"


class _Mapper(DateRangeMapper):
    def __init__(self, reverse=False):
        self.reverse = reverse

    def map_date_ranges(self, security):
        ranges = [
            DateRange(start_date=0, end_date=ts(SEP), security=parse_security("000001.SZ")),
            DateRange(start_date=ts(SEP), end_date=0, security=parse_security("000002.SZ")),
        ]
        return ranges[::-1] if self.reverse else ranges


class _NoMapper(DateRangeMapper):
    def map_date_ranges(self, security):
        return [DateRange(security=security)]


SECURITY = parse_security("000001.SZ")
M1 = period_from_string("M1")


@pytest.fixture
def target():
    return _MemorySource({
        "000001.SZ": minutes("20180918 14:30:00", 31, 1.0) + minutes("20180919 09:31:00", 30, 1.0),
        "000002.SZ": minutes("20180918 14:55:00", 6, 2.0) + minutes("20180919 09:31:00", 30, 2.0),
    })


@pytest.fixture
def mapped(target):
    ds = MappedDataSource()
    ds.set_mapper(_Mapper())
    ds.set_target_data_source(target)
    return ds


def test_get_data(mapped):
    data = mapped.get_data(SECURITY, M1)
    assert len(data) == 61
    assert [r.close for r in data[:30]] == [1.0] * 30
    assert [r.close for r in data[30:]] == [2.0] * 31
    assert data[30].date == ts(SEP)
    assert [r.date for r in data] == sorted(r.date for r in data)


def test_ranges_are_sorted_by_start(target):
    ds = MappedDataSource(_Mapper(reverse=True), target)
    data = ds.get_data(SECURITY, M1)
    assert data[0].date == ts("20180918 14:30:00")
    assert data[0].close == 1.0
    assert data[-1].close == 2.0


def test_get_range_data_across_mapping(mapped):
    data = mapped.get_range_data(SECURITY, M1, ts("20180918 14:30:00"), ts("20180919 10:00:00"))
    assert len(data) == 61
    assert data[-1].date == ts("20180919 10:00:00")


def test_get_range_data_ending_at_separator(mapped):
    data = mapped.get_range_data(SECURITY, M1, ts("20180918 14:30:00"), ts(SEP))
    assert len(data) == 31
    assert data[-1].date == ts(SEP)
    assert data[-1].close == 2.0
    assert data[-2].close == 1.0


def test_get_range_data_from_separator(mapped):
    data = mapped.get_range_data(SECURITY, M1, ts(SEP), 0)
    assert len(data) == 31
    assert {r.close for r in data} == {2.0}


def test_get_range_data_open(mapped):
    assert mapped.get_range_data(SECURITY, M1, 0, 0) == mapped.get_data(SECURITY, M1)


def test_get_data_without_mapping(target):
    ds = MappedDataSource()
    ds.set_mapper(_NoMapper())
    ds.set_target_data_source(target)
    assert ds.get_data(SECURITY, M1) == target.get_data(SECURITY, M1)


def test_unconfigured_raises():
    with pytest.raises(RuntimeError):
        MappedDataSource().get_data(SECURITY, M1)
    with pytest.raises(RuntimeError):
        MappedDataSource(mapper=_Mapper()).get_range_data(SECURITY, M1, 0, 0)


def test_get_data_ex(mapped):
    data = mapped.get_data_ex(SECURITY, M1, ts("20180918 14:58:00"), 4)
    assert [r.date for r in data] == [
        ts("20180918 14:58:00"),
        ts("20180918 14:59:00"),
        ts(SEP),
        ts("20180919 09:31:00"),
    ]


def test_get_data_from_last(mapped):
    data = mapped.get_data_from_last(SECURITY, M1, ts(SEP), 2)
    assert [r.date for r in data] == [ts("20180918 14:59:00"), ts(SEP)]
    assert [r.close for r in data] == [1.0, 2.0]


def test_get_last_record(mapped):
    record = mapped.get_last_record(SECURITY, M1)
    assert record.date == ts("20180919 10:00:00")
    assert record.close == 2.0


def test_writes_are_unsupported(mapped):
    with pytest.raises(UnsupportedOperation):
        mapped.append_data(SECURITY, M1, [])
    with pytest.raises(UnsupportedOperation):
        mapped.save_data(SECURITY, M1, [])
    with pytest.raises(UnsupportedOperation):
        mapped.remove_data(SECURITY, M1, 0, 0)