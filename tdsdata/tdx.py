"""Data source over a TDX installation directory (vipdoc and T0002 trees)."""

from __future__ import annotations

import json
import logging
import os
import re
import struct
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator

from .converter import ForwardAdjustConverter, PeriodConverter
from .models import BaseDataSource, InfoExItem, Record, Security, StockNameItem
from .period import PERIOD_D, PERIOD_M, PERIOD_M5, Period, period_from_string
from .recordio import FileDamagedError, RecordMarshaller, RecordReader, RecordWriter
from .tdxformat import TDX_RECORD_SIZE, TdxMarshaller, security_to_string

log = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r\n|\r|\n")

_DIR_TO_PERIOD = {"fzline": "MINUTE5", "lday": "DAY1", "minline": "MINUTE1"}
_PERIOD_TO_DIR = {name: directory for directory, name in _DIR_TO_PERIOD.items()}
_SUFFIXES = {"MINUTE1": ".lc1", "MINUTE5": ".lc5", "DAY1": ".day"}

_EXCHANGE_BLOCK = {"SZ": "0", "SH": "1"}
_BLOCK_EXCHANGE = {block: exchange for exchange, block in _EXCHANGE_BLOCK.items()}

_PROFILE_SIZE = 64
_NAMES_SIZE = 29

_INFO_EX_FIELDS = {
    "Date": "date",
    "Bonus": "bonus",
    "DeliveredShares": "delivered_shares",
    "RationedSharePrice": "rationed_share_price",
    "RationedShares": "rationed_shares",
}


def _dir_to_period(name: str) -> Period | None:
    try:
        return period_from_string(_DIR_TO_PERIOD.get(name, name.upper()))
    except ValueError:
        return None


def _period_dir(period: Period) -> str:
    return _PERIOD_TO_DIR.get(period.name, period.name.lower())


def _file_suffix(period: Period) -> str:
    return _SUFFIXES.get(period.name, "." + period.short_name.lower())


def _info_ex_from_json(obj: dict) -> InfoExItem:
    lowered = {key.lower(): value for key, value in obj.items()}
    kwargs = {
        attr: lowered[key.lower()]
        for key, attr in _INFO_EX_FIELDS.items()
        if key.lower() in lowered
    }
    if "date" in kwargs:
        kwargs["date"] = int(kwargs["date"])
    return InfoExItem(**kwargs)


def _info_ex_to_json(item: InfoExItem) -> dict:
    return {key: getattr(item, attr) for key, attr in _INFO_EX_FIELDS.items()}


def _open_rw(path: Path) -> BinaryIO:
    fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o666)
    return os.fdopen(fd, "r+b")


def _is_increasing(data: list[Record]) -> bool:
    return all(a.date < b.date for a, b in zip(data, data[1:]))


class TdxDataSource(BaseDataSource):
    """Reads and writes TDX day and minute files, names and ex-rights data."""

    def __init__(self, ds_dir, need_build_cache: bool = True):
        root = Path(ds_dir)
        self.data_dir = root / "vipdoc"
        self.config_dir = root / "T0002"
        self.need_build_cache = need_build_cache
        self.info_ex: dict[str, list[InfoExItem]] | None = None
        self._lock = threading.Lock()
        self._stock_code_cache: dict[str, list[str]] = {}
        self._stock_name_history: dict[str, list[StockNameItem]] | None = None
        self._stock_names: dict[str, str] | None = None

    def reset(self) -> None:
        """Forget the loaded ex-rights data."""
        self.info_ex = None

    # Stock lists and names

    def get_stock_codes(self, exchange: str) -> list[str] | None:
        """Codes such as 000001.SZ of an exchange (sz or sh); None if unknown."""
        block = _EXCHANGE_BLOCK.get(exchange.upper())
        if block is None:
            return None
        with self._lock:
            if block in self._stock_code_cache:
                return list(self._stock_code_cache[block])
            path = self.config_dir / "hq_cache" / "tipinfo.dat"
            try:
                raw = path.read_bytes()
            except OSError as exc:
                log.error("reading %s failed: %s", path, exc)
                raw = b""
            for line in _LINE_BREAK.split(raw.decode("latin-1")):
                line = line.strip()
                if not line:
                    continue
                parts = line.split("|")
                line_block = parts[0]
                if line_block not in _BLOCK_EXCHANGE or len(parts) < 2:
                    continue
                self._stock_code_cache.setdefault(line_block, []).append(
                    f"{parts[1]}.{_BLOCK_EXCHANGE[line_block]}"
                )
            return list(self._stock_code_cache.get(block, []))

    def get_stock_name_history(self, security: Security) -> list[StockNameItem]:
        """Names a stock has carried, newest first."""
        with self._lock:
            if self._stock_name_history is None:
                self._stock_name_history = self._load_name_history()
            return list(self._stock_name_history.get(security.code, []))

    def _load_name_history(self) -> dict[str, list[StockNameItem]]:
        history: dict[str, list[StockNameItem]] = {}
        path = self.config_dir / "hq_cache" / "profile.dat"
        try:
            raw = path.read_bytes()
        except OSError as exc:
            log.error("reading %s failed: %s", path, exc)
            return history
        end = len(raw) // _PROFILE_SIZE * _PROFILE_SIZE
        for offset in range(0, end, _PROFILE_SIZE):
            entry = raw[offset:offset + _PROFILE_SIZE]
            code = entry[1:7].decode("latin-1")
            name_bytes = entry[8:17]
            name_bytes = name_bytes.rstrip(b"\x00") or name_bytes
            name = name_bytes.decode("gbk", errors="replace")
            (date,) = struct.unpack_from("<I", entry, 17)
            history.setdefault(code, []).append(StockNameItem(date, name))
        for items in history.values():
            items.sort(key=lambda item: item.date, reverse=True)
        return history

    def _ensure_stock_names(self) -> dict[str, str]:
        with self._lock:
            if self._stock_names is None:
                names: dict[str, str] = {}
                for exchange in ("sh", "sz"):
                    names.update(self._load_exchange_names(exchange))
                self._stock_names = names
            return self._stock_names

    def _load_exchange_names(self, exchange: str) -> dict[str, str]:
        path = self.config_dir / "hq_cache" / f"{exchange}-names.dat"
        try:
            raw = path.read_bytes()
        except OSError as exc:
            log.error("reading %s failed: %s", path, exc)
            return {}
        names = {}
        end = len(raw) // _NAMES_SIZE * _NAMES_SIZE
        for offset in range(0, end, _NAMES_SIZE):
            entry = raw[offset:offset + _NAMES_SIZE]
            code = entry[0:6].decode("latin-1")
            name_bytes = entry[8:16].split(b"\x00", 1)[0]
            names[f"{code}.{exchange.upper()}"] = name_bytes.decode("gbk", errors="replace")
        return names

    def get_stock_name(self, security: Security) -> str:
        """The current name of a stock, or an empty string."""
        return self._ensure_stock_names().get(str(security), "")

    def get_stock_names(self) -> dict[str, str]:
        """All known names keyed by code such as 000001.SZ."""
        return dict(self._ensure_stock_names())

    # Ex-rights data

    def _info_ex_path(self) -> Path:
        return self.config_dir / "hq_cache" / "infoex.dat"

    def get_stock_info_ex(self, security: Security) -> list[InfoExItem]:
        """The ex-rights events of a stock."""
        if self.info_ex is None:
            loaded = json.loads(self._info_ex_path().read_text(encoding="utf-8")) or {}
            self.info_ex = {
                code: [_info_ex_from_json(obj) for obj in items or []]
                for code, items in loaded.items()
            }
        return list(self.info_ex.get(security_to_string(security), []))

    def set_info_ex(self, info_ex: dict[str, list[InfoExItem]]) -> None:
        """Replace the ex-rights data and write it to disk."""
        self.info_ex = info_ex
        payload = {
            code: [_info_ex_to_json(item) for item in items]
            for code, items in info_ex.items()
        }
        self._info_ex_path().write_text(json.dumps(payload), encoding="utf-8")

    def supported_periods(self) -> list[Period]:
        return [PERIOD_M, PERIOD_M5, PERIOD_D]

    # Locating files

    def _strict_data_file(self, security: Security, period: Period) -> Path:
        code = security_to_string(security)
        root = self.data_dir / security.exchange.lower()
        return root / _period_dir(period) / f"{code}{_file_suffix(period)}"

    def _data_file(self, security: Security, period: Period) -> tuple[Period, Path]:
        """The file of the longest stored period that converts to ``period``."""
        code = security_to_string(security)
        root = self.data_dir / security.exchange.lower()
        try:
            entries = list(root.iterdir())
        except OSError as exc:
            log.error("reading directory %s failed: %s", root, exc)
            raise FileNotFoundError("data file not found") from exc

        candidates = []
        for entry in entries:
            if not entry.is_dir():
                continue
            stored = _dir_to_period(entry.name)
            if stored is None or not stored.can_convert_to(period):
                continue
            if not (entry / f"{code}{_file_suffix(stored)}").exists():
                continue
            candidates.append(stored)

        if not candidates:
            log.error("no period directory found for %s", period.short_name)
            raise FileNotFoundError("data file not found")

        best = sorted(candidates, reverse=True)[0]
        return best, root / _period_dir(best) / f"{code}{_file_suffix(best)}"

    @contextmanager
    def _open_reader(self, security: Security, period: Period) -> Iterator[tuple[Period, RecordReader, int]]:
        data_period, path = self._data_file(security, period)
        with open(path, "rb") as file:
            reader = RecordReader(file, TDX_RECORD_SIZE, TdxMarshaller(data_period))
            yield data_period, reader, reader.count()

    @staticmethod
    def _search(reader: RecordReader, date: int, count: int) -> tuple[int, bool]:
        """Binary search for ``date``; returns its index or insertion point."""
        low, high = 0, count - 1
        while low <= high:
            mid = (low + high) // 2
            records = reader.read(mid, mid + 1)
            if not records:
                raise IOError("no data read")
            found = records[0].date
            if found == date:
                return mid, True
            if found < date:
                low = mid + 1
            else:
                high = mid - 1
        return low, False

    @staticmethod
    def _convert(records: list[Record], data_period: Period, period: Period) -> list[Record]:
        if period == data_period:
            return records
        return PeriodConverter(data_period, period).convert(records)

    # Reading

    def get_data(self, security: Security, period: Period) -> list[Record]:
        return self.get_range_data(security, period, 0, 0)

    def get_data_ex(self, security, period, start_date, count) -> list[Record]:
        with self._open_reader(security, period) as (data_period, reader, total):
            start = self._search(reader, start_date, total)[0] if start_date else 0
            records = reader.read(start, min(start + count, total))
        return self._convert(records, data_period, period)

    def get_range_data(self, security, period, start_date, end_date) -> list[Record]:
        if start_date and end_date and start_date > end_date:
            return []
        with self._open_reader(security, period) as (data_period, reader, total):
            start, end = 0, total
            if start_date:
                start = self._search(reader, start_date, total)[0]
            if end_date:
                end, found = self._search(reader, end_date, total)
                if found:
                    end += 1
            records = reader.read(start, end)
        return self._convert(records, data_period, period)

    def get_data_from_last(self, security, period, end_date, count) -> list[Record]:
        with self._open_reader(security, period) as (data_period, reader, total):
            end = total
            if end_date:
                end, found = self._search(reader, end_date, total)
                if found:
                    end += 1
            records = reader.read(max(end - count, 0), end)
        return self._convert(records, data_period, period)

    def get_last_record(self, security, period) -> Record | None:
        path = self._strict_data_file(security, period)
        with open(path, "rb") as file:
            reader = RecordReader(file, TDX_RECORD_SIZE, TdxMarshaller(period))
            total = reader.count()
            if total == 0:
                return None
            return reader.read(total - 1, total)[0]

    def get_forward_adjusted_data(self, security, period) -> list[Record]:
        return self.get_forward_adjusted_range_data(security, period, 0, 0)

    def get_forward_adjusted_range_data(self, security, period, start_date, end_date) -> list[Record]:
        records = self.get_range_data(security, period, start_date, end_date)
        return self._forward_adjust(security, period, records)

    def get_forward_adjusted_data_from_last(self, security, period, end_date, count) -> list[Record]:
        records = self.get_data_from_last(security, period, end_date, count)
        return self._forward_adjust(security, period, records)

    def _forward_adjust(self, security, period, records: list[Record]) -> list[Record]:
        items = self.get_stock_info_ex(security)
        if not items:
            return records
        return ForwardAdjustConverter(period, items).convert(records)

    # Writing

    def _prepare_path(self, security, period) -> Path:
        path = self._strict_data_file(security, period)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    def _truncate_from(self, file: BinaryIO, marshaller: RecordMarshaller, date: int) -> int:
        """Cut the file at the first record not before ``date``; return that index."""
        reader = RecordReader(file, TDX_RECORD_SIZE, marshaller)
        try:
            total = reader.count()
        except FileDamagedError:
            file.truncate(0)
            total = 0
        index, _ = self._search(reader, date, total)
        if index <= total:
            file.truncate(index * TDX_RECORD_SIZE)
        return index

    def append_data(self, security, period, data) -> None:
        """Write records, replacing stored ones from the first new date on."""
        data = list(data)
        if not data:
            return
        if not _is_increasing(data):
            raise ValueError("bad data")
        path = self._prepare_path(security, period)
        marshaller = TdxMarshaller(period)
        with _open_rw(path) as file:
            start = self._truncate_from(file, marshaller, data[0].date)
            RecordWriter(file, TDX_RECORD_SIZE, marshaller).write(start, data)

    def save_data(self, security, period, data) -> None:
        """Replace the stored records with ``data``."""
        data = list(data)
        if not data:
            return
        if not _is_increasing(data):
            raise ValueError("bad data")
        path = self._prepare_path(security, period)
        marshaller = TdxMarshaller(period)
        with open(path, "w+b") as file:
            RecordWriter(file, TDX_RECORD_SIZE, marshaller).write(0, data)

    def append_raw_data(self, security, period, data: bytes) -> None:
        """Write raw TDX records, replacing stored ones from the first new date on."""
        if not data:
            return
        if len(data) % TDX_RECORD_SIZE:
            raise ValueError("bad data")
        path = self._prepare_path(security, period)
        marshaller = TdxMarshaller(period)
        first = marshaller.from_bytes(data[:TDX_RECORD_SIZE])
        with _open_rw(path) as file:
            start = self._truncate_from(file, marshaller, first.date)
            RecordWriter(file, TDX_RECORD_SIZE, marshaller).write_raw(start, data)

    def truncate_to(self, security, period, date) -> None:
        """Remove records whose date is at or after ``date``."""
        path = self._prepare_path(security, period)
        with _open_rw(path) as file:
            self._truncate_from(file, TdxMarshaller(period), date)

    def remove_data(self, security, period, start_date, end_date) -> None:
        """Remove records between the dates, both inclusive; 0 leaves a side open."""
        path = self._strict_data_file(security, period)
        if not path.exists():
            return
        marshaller = TdxMarshaller(period)
        with _open_rw(path) as file:
            reader = RecordReader(file, TDX_RECORD_SIZE, marshaller)
            records = reader.read(0, reader.count())
            kept = [
                r for r in records
                if not (r.date >= start_date and (not end_date or r.date <= end_date))
            ]
            RecordWriter(file, TDX_RECORD_SIZE, marshaller).write(0, kept)