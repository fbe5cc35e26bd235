import struct
from datetime import datetime

import pytest

from tdsdata.models import Record, Security
from tdsdata.period import LOCAL_TZ, PERIOD_D, PERIOD_M, PERIOD_M5
from tdsdata.tdxformat import (
    TDX_RECORD_SIZE,
    TdxMarshaller,
    TdxRecord,
    day_date_to_timestamp,
    minute_date_to_timestamp,
    security_to_string,
    tdx_record_from_bytes,
    timestamp_to_day_date,
    timestamp_to_minute_date,
)


def ts(*args):
    return int(datetime(*args, tzinfo=LOCAL_TZ).timestamp()) * 1000


def test_record_size():
    assert TDX_RECORD_SIZE == 32
    assert len(TdxRecord().to_bytes(PERIOD_D)) == TDX_RECORD_SIZE


def test_day_date_round_trip():
    t = day_date_to_timestamp(20170210)
    assert t == ts(2017, 2, 10)
    assert timestamp_to_day_date(t) == 20170210


def test_minute_date_round_trip():
    t = ts(2017, 2, 10, 14, 31)
    assert minute_date_to_timestamp(timestamp_to_minute_date(t)) == t


def test_day_record_bytes_round_trip():
    rec = TdxRecord(date=20170210, open=9120, close=9150, high=9200, low=9100, volume=1000.0, amount=5.0)
    back = tdx_record_from_bytes(PERIOD_D, rec.to_bytes(PERIOD_D))
    assert back == rec


def test_day_record_wire_layout():
    data = TdxRecord(date=20170210, open=9120).to_bytes(PERIOD_D)
    assert struct.unpack_from("<II", data, 0) == (20170210, 912)


def test_bad_length():
    with pytest.raises(ValueError):
        tdx_record_from_bytes(PERIOD_D, b"\x00" * 31)


def test_security_to_string():
    assert security_to_string(Security("000001", "SZ")) == "sz000001"


@pytest.mark.parametrize("period,date", [(PERIOD_D, ts(2017, 2, 10)), (PERIOD_M, ts(2017, 2, 10, 10, 5)), (PERIOD_M5, ts(2017, 2, 10, 14, 55))])
def test_marshaller_round_trip(period, date):
    m = TdxMarshaller(period)
    rec = Record(date=date, open=9.12, close=9.15, high=9.2, low=9.1, volume=1000.0, amount=9150.0)
    data = m.to_bytes(rec)
    assert len(data) == TDX_RECORD_SIZE
    back = m.from_bytes(data)
    assert back.date == rec.date
    assert round(back.close, 2) == rec.close
    assert round(back.high, 2) == rec.high
    assert back.volume == rec.volume