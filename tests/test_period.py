from datetime import datetime

import pytest

from tdsdata.period import (
    LOCAL_TZ,
    PERIOD_D,
    PERIOD_M,
    PERIOD_M5,
    PERIOD_M15,
    Period,
    PeriodUnit,
    date_day,
    date_month,
    date_quarter,
    date_week,
    date_year,
    day_timestamp,
    period_from_string,
)


def ts(*args):
    return int(datetime(*args, tzinfo=LOCAL_TZ).timestamp()) * 1000


@pytest.mark.parametrize("text", ["M1", "m5", "D1", "MINUTE15", "DAY1", "MN1", "Y1"])
def test_period_names_round_trip(text):
    p = period_from_string(text)
    assert period_from_string(p.short_name) == p
    assert period_from_string(p.name) == p


def test_known_periods():
    assert period_from_string("M1") == PERIOD_M
    assert PERIOD_M5.name == "MINUTE5"
    assert PERIOD_D.name == "DAY1"


@pytest.mark.parametrize("text", ["", "X1", "M", "M0"])
def test_bad_period(text):
    with pytest.raises(ValueError):
        period_from_string(text)


def test_can_convert_to():
    assert PERIOD_M5.can_convert_to(PERIOD_M15)
    assert not PERIOD_M15.can_convert_to(PERIOD_M5)
    assert PERIOD_M.can_convert_to(PERIOD_D)
    assert PERIOD_D.can_convert_to(Period(PeriodUnit.YEAR))
    assert not PERIOD_D.can_convert_to(PERIOD_M)


def test_ordering():
    day = period_from_string("D1")
    m15 = period_from_string("M15")
    m5 = period_from_string("M5")
    assert day > m15 > m5
    assert sorted([day, m5, m15]) == [PERIOD_M5, PERIOD_M15, PERIOD_D]


def test_calendar_helpers():
    t = ts(2017, 2, 10, 14, 30)
    assert date_day(t) == 20170210
    assert date_month(t) == 201702
    assert date_year(t) == 2017
    assert date_quarter(t) == 20171
    assert day_timestamp(t) == ts(2017, 2, 10)


def test_week_same_within_week():
    assert date_week(ts(2017, 2, 6)) == date_week(ts(2017, 2, 10))
    assert date_week(ts(2017, 2, 10)) != date_week(ts(2017, 2, 13))