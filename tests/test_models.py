import pytest

from tdsdata.models import (
    BaseDataSource,
    DateRange,
    Record,
    Security,
    parse_security,
    round_to,
)


def test_parse_security_and_str_round_trip():
    sec = parse_security("000001.SZ")
    assert sec.code == "000001"
    assert sec.exchange == "SZ"
    assert str(sec) == "000001.SZ"


def test_parse_security_uppercases():
    assert str(parse_security("eosqfut.okex")) == "EOSQFUT.OKEX"


@pytest.mark.parametrize("text", ["", "000001", ".SZ", "000001."])
def test_parse_security_rejects_bad(text):
    with pytest.raises(ValueError):
        parse_security(text)


def test_round_to_half_away_from_zero():
    assert round_to(2.5, 0) == 3.0
    assert round_to(-2.5, 0) == -3.0


def test_date_range_defaults_open():
    r = DateRange(security=Security("000001", "SZ"))
    assert (r.start_date, r.end_date) == (0, 0)


def test_record_defaults_zero():
    assert Record(date=5).volume == 0.0


def test_base_data_source_is_abstract():
    with pytest.raises(TypeError):
        BaseDataSource()