"""The binary day and minute record format of TDX data files."""

from __future__ import annotations

import struct
from dataclasses import dataclass, replace
from datetime import datetime

from .models import Record, Security, round_to
from .period import LOCAL_TZ, Period, PeriodUnit
from .recordio import RecordMarshaller

TDX_RECORD_SIZE = 32

MINUTE = 60 * 1000
MINUTE_1300 = 13 * 60 * MINUTE
MINUTE_1130 = (11 * 60 + 30) * MINUTE
DAY = 24 * 60 * MINUTE


def _f32(value: float) -> float:
    return struct.unpack("<f", struct.pack("<f", value))[0]


def _i32(value: int) -> int:
    return ((value + 2**31) % 2**32) - 2**31


def _u32(value: int) -> int:
    return value % 2**32


def _ms(d: datetime) -> int:
    return int(d.timestamp()) * 1000


def minute_date_to_timestamp(value: int) -> int:
    day_value = value & 0xFFFF
    minute_value = (value >> 16) & 0xFFFF
    year = day_value // 2048 + 2004
    month = (day_value % 2048) // 100
    day = (day_value % 2048) % 100
    hour, minute = divmod(minute_value, 60)
    return _ms(datetime(year, month, day, hour, minute, tzinfo=LOCAL_TZ))


def day_date_to_timestamp(value: int) -> int:
    year, rest = divmod(value, 10000)
    month, day = divmod(rest, 100)
    return _ms(datetime(year, month, day, tzinfo=LOCAL_TZ))


def date_to_timestamp(period: Period, value: int) -> int:
    if period.unit == PeriodUnit.MINUTE:
        return minute_date_to_timestamp(value)
    return day_date_to_timestamp(value)


def _local(ts: int) -> datetime:
    return datetime.fromtimestamp(ts / 1000, LOCAL_TZ)


def timestamp_to_minute_date(ts: int) -> int:
    d = _local(ts)
    day_value = (d.year - 2004) * 2048 + d.month * 100 + d.day
    minute_value = d.hour * 60 + d.minute
    return _u32((minute_value << 16) | day_value)


def timestamp_to_day_date(ts: int) -> int:
    d = _local(ts)
    return d.year * 10000 + d.month * 100 + d.day


def timestamp_to_date(period: Period, ts: int) -> int:
    if period.unit == PeriodUnit.MINUTE:
        return timestamp_to_minute_date(ts)
    return timestamp_to_day_date(ts)


@dataclass
class TdxRecord:
    """A record as stored in a TDX file; prices are in thousandths."""

    date: int = 0
    open: int = 0
    close: int = 0
    high: int = 0
    low: int = 0
    volume: float = 0.0
    amount: float = 0.0
    pad: int = 0

    def to_bytes(self, period: Period) -> bytes:
        prices = (self.open, self.high, self.low, self.close)
        if period.unit == PeriodUnit.MINUTE:
            body = struct.pack("<4f", *(_f32(_f32(p) / 1000) for p in prices))
        else:
            body = struct.pack("<4I", *(_u32(int(p / 10)) for p in prices))
        return (
            struct.pack("<I", _u32(self.date))
            + body
            + struct.pack("<fI", self.amount, _u32(int(_f32(self.volume))))
            + b"\x00" * 4
        )


def tdx_record_from_bytes(period: Period, data: bytes) -> TdxRecord:
    if len(data) != TDX_RECORD_SIZE:
        raise ValueError("less record bytes")
    (date,) = struct.unpack_from("<I", data, 0)
    if period.unit == PeriodUnit.MINUTE:
        prices = [_i32(int(_f32(v * 1000))) for v in struct.unpack_from("<4f", data, 4)]
    else:
        prices = [_i32(_i32(v) * 10) for v in struct.unpack_from("<4I", data, 4)]
    amount, volume = struct.unpack_from("<fI", data, 20)
    open_, high, low, close = prices
    return TdxRecord(
        date=date, open=open_, close=close, high=high, low=low,
        volume=_f32(float(volume)), amount=amount,
    )


def security_to_string(security: Security) -> str:
    return f"{security.exchange}{security.code}".lower()


class TdxMarshaller(RecordMarshaller):
    """Converts records to and from the TDX format of a period."""

    def __init__(self, period: Period):
        self.period = period

    def to_bytes(self, record: Record) -> bytes:
        date = record.date
        if self.period.unit == PeriodUnit.MINUTE:
            date += MINUTE
            if date % DAY == MINUTE_1130:
                date += 90 * MINUTE
        trec = TdxRecord(
            date=timestamp_to_date(self.period, date),
            open=_i32(int(round_to(record.open * 1000, 0))),
            close=_i32(int(round_to(record.close * 1000, 0))),
            high=_i32(int(round_to(record.high * 1000, 0))),
            low=_i32(int(round_to(record.low * 1000, 0))),
            amount=_f32(record.amount),
            volume=_f32(record.volume),
        )
        return trec.to_bytes(self.period)

    def from_bytes(self, data: bytes) -> Record:
        t = tdx_record_from_bytes(self.period, data)
        record = Record(
            date=date_to_timestamp(self.period, t.date),
            open=t.open / 1000,
            close=t.close / 1000,
            high=t.high / 1000,
            low=t.low / 1000,
            amount=float(t.amount),
            volume=float(t.volume),
        )
        if self.period.unit == PeriodUnit.MINUTE:
            if record.date % DAY == MINUTE_1300:
                record = replace(record, date=record.date - 90 * MINUTE)
            record.date -= MINUTE
        return record