"""Market bar data: TDX file sources, period conversion, price adjustment and chained sources."""

__version__ = "0.1.0"