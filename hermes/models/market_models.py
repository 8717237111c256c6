"""
Market data value types shared by the gateway and the trading core.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Asset:
	"""Static metadata of a tradable symbol, as discovered on the exchange."""
	base_asset: str
	symbol: str
	min_quantity: float
	max_quantity: float
	price_precision: int
	quantity_precision: int

	def quantity_in_bounds(self, quantity: float) -> bool:
		return self.min_quantity <= quantity <= self.max_quantity

	def round_quantity(self, quantity: float) -> float:
		return round(quantity, self.quantity_precision)

	def format_price(self, price: float) -> str:
		return f"{price:.{self.price_precision}f}"


@dataclass(frozen=True)
class CandleUpdate:
	"""One kline event pushed by the market-data stream."""
	symbol: str
	open: float
	high: float
	low: float
	close: float
	is_final: bool
	ts: Optional[datetime] = None

	def to_dict(self):
		return {
			"symbol": self.symbol,
			"open": self.open,
			"high": self.high,
			"low": self.low,
			"close": self.close,
			"is_final": self.is_final,
			"ts": self.ts.isoformat() if self.ts else None,
		}
