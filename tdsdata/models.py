"""Core entities and the abstract interfaces shared by the data sources."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


def round_to(value: float, places: int) -> float:
    """Round half away from zero to the given number of decimal places."""
    factor = 10 ** places
    scaled = abs(value) * factor
    rounded = math.floor(scaled + 0.5) / factor
    return math.copysign(rounded, value) if value else 0.0


@dataclass(frozen=True)
class Security:
    """A traded instrument identified by code and exchange."""

    code: str
    exchange: str
    category: str = ""

    def __str__(self) -> str:
        return f"{self.category}{self.code}.{self.exchange}"


def parse_security(text: str) -> Security:
    """Parse a security of the form CODE.EXCHANGE, e.g. 000001.SZ."""
    text = text.strip()
    code, sep, exchange = text.rpartition(".")
    if not sep or not code or not exchange:
        raise ValueError(f"bad security: {text!r}")
    return Security(code=code.upper(), exchange=exchange.upper())


@dataclass
class Record:
    """One bar of price data; ``date`` is a timestamp in milliseconds."""

    date: int = 0
    open: float = 0.0
    close: float = 0.0
    high: float = 0.0
    low: float = 0.0
    volume: float = 0.0
    amount: float = 0.0
    buy_volume: float = 0.0
    sell_volume: float = 0.0


@dataclass
class TickItem:
    """A single market tick."""

    code: str = ""
    timestamp: int = 0
    price: float = 0.0
    high: float = 0.0
    low: float = 0.0
    volume: float = 0.0
    amount: float = 0.0
    buy_volume: float = 0.0
    sell_volume: float = 0.0


@dataclass
class InfoExItem:
    """An ex-rights event; ``date`` is a YYYYMMDD integer."""

    date: int = 0
    bonus: float = 0.0
    delivered_shares: float = 0.0
    rationed_share_price: float = 0.0
    rationed_shares: float = 0.0


@dataclass
class StockNameItem:
    """A name a stock carried from a given YYYYMMDD date."""

    date: int
    name: str


@dataclass
class DateRange:
    """A date range of a security; start inclusive, end exclusive, 0 means open."""

    security: Security
    start_date: int = 0
    end_date: int = 0


class DateRangeMapper(ABC):
    """Maps a security to the ranges of other securities that make up its history."""

    @abstractmethod
    def map_date_ranges(self, security: Security) -> list[DateRange]:
        """Return the ranges making up the security's history."""


class BaseDataSource(ABC):
    """Storage of records per security and period. End dates are inclusive."""

    @abstractmethod
    def get_data(self, security, period) -> list[Record]:
        """Return all records."""

    @abstractmethod
    def get_data_ex(self, security, period, start_date, count) -> list[Record]:
        """Return up to ``count`` records starting at ``start_date``."""

    @abstractmethod
    def get_range_data(self, security, period, start_date, end_date) -> list[Record]:
        """Return records between the two dates, both inclusive."""

    @abstractmethod
    def get_data_from_last(self, security, period, end_date, count) -> list[Record]:
        """Return up to ``count`` records ending at ``end_date``."""

    @abstractmethod
    def get_last_record(self, security, period) -> Record | None:
        """Return the last record, or None."""

    @abstractmethod
    def append_data(self, security, period, data) -> None:
        """Append records."""

    @abstractmethod
    def save_data(self, security, period, data) -> None:
        """Replace stored records with ``data``."""

    @abstractmethod
    def remove_data(self, security, period, start_date, end_date) -> None:
        """Remove records between the two dates."""


class RecordHandler(ABC):
    """Consumes records one at a time and emits zero or more records."""

    @abstractmethod
    def feed(self, record: Record) -> list[Record]:
        """Process one record."""