"""Data models for Poloniex market data."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict

from .exceptions import ProtocolError

# Time placeholders in seconds (MONTH == 30 days)
MINUTE = 60
HOUR = MINUTE * 60
DAY = HOUR * 24
WEEK = DAY * 7
MONTH = DAY * 30
YEAR = DAY * 365

# Candle periods accepted by returnChartData
CHART_PERIODS = (300, 900, 1800, 7200, 14400, 86400)


@dataclass
class Candle:
    """OHLCV candle from returnChartData."""
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float  # Quote currency volume
    quote_volume: float  # Base currency volume
    weighted_average: float

    def __post_init__(self):
        """Validate candle prices."""
        if self.high < self.low:
            raise ValueError(f"Candle high {self.high} is below low {self.low}")

    @classmethod
    def from_response(cls, row: Dict[str, Any]) -> "Candle":
        """Build a candle from one element of the returnChartData array.

        Raises:
            ProtocolError: the row is missing fields or holds impossible prices
        """
        try:
            return cls(
                timestamp=datetime.fromtimestamp(int(row["date"])),
                open=float(row["open"]),
                high=float(row["high"]),
                low=float(row["low"]),
                close=float(row["close"]),
                volume=float(row["volume"]),
                quote_volume=float(row["quoteVolume"]),
                weighted_average=float(row["weightedAverage"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ProtocolError(f"Malformed chart data row: {e}", body=str(row))
