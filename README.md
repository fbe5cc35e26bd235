# tdsdata

Read and write market bar (K-line) data for securities, and reshape it.

## What is in the package

- `tdsdata.models`: `Security` and `parse_security("000001.SZ")`, the
  `Record`, `TickItem`, `InfoExItem`, `StockNameItem` and `DateRange`
  dataclasses, and the abstract `BaseDataSource`, `DateRangeMapper` and
  `RecordHandler` interfaces.
- `tdsdata.period`: `Period` and `PeriodUnit`, `period_from_string`
  (accepts names such as `M1`, `M5`, `D1`, `MINUTE5`, `DAY1`), the
  constants `PERIOD_M`, `PERIOD_M5`, `PERIOD_M15`, `PERIOD_D`, and calendar
  helpers (`date_day`, `day_timestamp`, `date_week`, `date_month`,
  `date_quarter`, `date_year`). Calendar helpers use UTC+8.
- `tdsdata.converter`: `PeriodConverter` merges bars into a longer period
  (for example M1 to M5, M1 to D1, D1 to week, month, quarter or year);
  `ForwardAdjustConverter` applies forward price adjustment from
  ex-rights items; `merge_data` merges every N records into one.
- `tdsdata.recordio`: `RecordReader` and `RecordWriter` for files of
  fixed-size binary records, `RecordMarshaller`, and `FileDamagedError`
  when a file's size is not a multiple of the record size.
- `tdsdata.tdxformat`: the 32-byte TDX day/minute record layout
  (`TdxRecord`, `tdx_record_from_bytes`, `TdxMarshaller`) and date
  conversions (`minute_date_to_timestamp`, `timestamp_to_day_date`, ...).
- `tdsdata.tdx.TdxDataSource`: reads and writes TDX-style files under
  `vipdoc/<exchange>/<period dir>/<code><suffix>`, and reads stock lists,
  names, name history and ex-rights tables under `T0002/hq_cache`. A
  requested period is served from the longest stored period that converts
  to it.
- `tdsdata.composite.CompositeDataSource`: chains several sources one
  after another in time. It is read-only.
- `tdsdata.mapped.MappedDataSource`: builds a security's history from date
  ranges of other securities, given a `DateRangeMapper`. It is read-only.
- `tdsdata.ticks.SecondRecordGenerator`: builds one-second bars from ticks.

## Installation

```
pip install .
```

## Example

```python
from tdsdata.converter import PeriodConverter
from tdsdata.models import parse_security
from tdsdata.period import period_from_string
from tdsdata.tdx import TdxDataSource

ds = TdxDataSource("data")
security = parse_security("000001.SZ")
m5 = period_from_string("M5")
m15 = period_from_string("M15")

bars = ds.get_data(security, m5)
m15_bars = PeriodConverter(m5, m15).convert(bars)
ds.save_data(security, m15, m15_bars)
```

Timestamps are integer milliseconds since the Unix epoch. A start or end
date of `0` means "no limit", and end dates are inclusive.

Errors are raised, not returned: a missing data file raises
`FileNotFoundError`, a damaged one `tdsdata.recordio.FileDamagedError`,
records not in increasing date order passed to `save_data` or
`append_data` raise `ValueError`, and writing to a composite or mapped
source raises `io.UnsupportedOperation`.

## What it does not do

The only storage is the TDX-style file tree. There is no CSV, database or
cache-server storage, no minute-bar smoothing against a trading calendar,
and no command-line tools; use the classes from your own code.

## Tests

```
pip install .[test]
pytest
```