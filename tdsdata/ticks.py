"""Building one-second bars from ticks."""

from __future__ import annotations

from .models import Record, Security, TickItem


class SecondRecordGenerator:
    """Aggregates ticks of one security into one-second records."""

    def __init__(self, security: Security):
        self.security = security
        self.current: Record | None = None

    def feed(self, tick: TickItem) -> Record | None:
        """Add a tick; return the bar it belongs to, or None for an empty tick.

        The returned record is updated in place while ticks of the same second
        keep arriving.
        """
        if tick.code != str(self.security):
            raise ValueError(f"tick of {tick.code} fed to generator of {self.security}")
        if tick.price == 0 or tick.volume == 0:
            return None

        ticker = tick.timestamp // 1000 * 1000
        current = self.current
        if current is None or current.date != ticker:
            self.current = Record(
                date=ticker,
                open=tick.price,
                close=tick.price,
                high=tick.high,
                low=tick.low,
                volume=tick.volume,
                amount=tick.amount,
                buy_volume=tick.buy_volume,
                sell_volume=tick.sell_volume,
            )
        else:
            current.close = tick.price
            current.high = max(current.high, tick.high)
            current.low = min(current.low, tick.low)
            current.volume += tick.volume
            current.amount += tick.amount
            current.buy_volume += tick.buy_volume
            current.sell_volume += tick.sell_volume
        return self.current