import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from hermes.engine.signals import Analysis, Side
from hermes.models.market_models import Asset

logger = logging.getLogger("positions")


class ExitSignal(str, Enum):
    SL = "SL"
    TP = "TP"


def calculate_sl_tp(side: Side, price: float, sl_pct: float, tp_pct: float) -> Tuple[float, float]:
    """Stop loss and take profit as fixed percentage offsets from the entry price."""
    if side == Side.BUY:
        return price - price * sl_pct, price + price * tp_pct
    return price + price * sl_pct, price - price * tp_pct


def pnl_ratio(side: Side, entry_price: float, price: float) -> float:
    if side == Side.BUY:
        return (price - entry_price) / entry_price
    return (entry_price - price) / price


@dataclass
class Position:
    id: int
    symbol: str
    side: Side
    entry_price: float
    entry_signal: str  # e.g. "bullish EMA cross"
    size: float  # quote-currency notional (USDT)
    quantity: float  # base-asset quantity
    sl: float
    tp: float
    exit_price: Optional[float] = None
    exit_signal: Optional[ExitSignal] = None
    net_pnl: float = 0.0  # USDT
    pnl: float = 0.0  # percentage

    @property
    def is_open(self) -> bool:
        return self.exit_signal is None

    def unrealized(self, price: float) -> Tuple[float, float]:
        ratio = pnl_ratio(self.side, self.entry_price, price)
        return ratio * self.size, ratio * 100

    def evaluate_close(self, price: float) -> Optional[ExitSignal]:
        """SL is checked first, so it wins when both targets are crossed."""
        if self.side == Side.BUY:
            if price <= self.sl:
                return ExitSignal.SL
            if price >= self.tp:
                return ExitSignal.TP
        else:
            if price >= self.sl:
                return ExitSignal.SL
            if price <= self.tp:
                return ExitSignal.TP
        return None

    def close(self, exit_price: float, exit_signal: ExitSignal) -> None:
        if not self.is_open:
            raise RuntimeError(f"position {self.id} ({self.symbol}) already closed")
        ratio = pnl_ratio(self.side, self.entry_price, exit_price)
        self.exit_price = exit_price
        self.exit_signal = exit_signal
        self.net_pnl = ratio * self.size
        self.pnl = ratio * 100

    def to_dict(self):
        return {
            "id": self.id,
            "symbol": self.symbol,
            "side": self.side.value,
            "entry_price": self.entry_price,
            "entry_signal": self.entry_signal,
            "size": self.size,
            "quantity": self.quantity,
            "sl": self.sl,
            "tp": self.tp,
            "exit_price": self.exit_price,
            "exit_signal": self.exit_signal.value if self.exit_signal else None,
            "net_pnl": self.net_pnl,
            "pnl": self.pnl,
        }


class PositionLedger:
    """Owns every position of the session: at most one open position per symbol."""
    def __init__(self, account, max_positions: int = 5, sl_pct: float = 0.01, tp_pct: float = 0.04):
        self.account = account
        self.max_positions = max_positions
        self.sl_pct = sl_pct
        self.tp_pct = tp_pct
        self._open: Dict[str, Position] = {}
        self._closed: List[Position] = []
        self._ids = itertools.count(1)

    def open_position(self, analysis: Analysis, size: float, asset: Optional[Asset] = None) -> Optional[Position]:
        """Open a position on `analysis.symbol` or return None when a business rule forbids it.

        Passing the asset (real trading) rounds the quantity to its precision and
        requires it to lie within the tradable min/max quantity.
        """
        symbol = analysis.symbol
        if analysis.side == Side.NA:
            logger.debug("%s: no side, not opening", symbol)
            return None
        if symbol in self._open:
            logger.debug("%s: position already open", symbol)
            return None
        if len(self._open) >= self.max_positions:
            logger.debug("%s: no free slot (%d open)", symbol, len(self._open))
            return None
        if size <= 0 or self.account.available_balance < size:
            logger.debug("%s: insufficient balance for size %.2f (available %.2f)", symbol, size, self.account.available_balance)
            return None
        price = analysis.price
        quantity = size / price
        if asset is not None:
            quantity = asset.round_quantity(quantity)
            if not asset.quantity_in_bounds(quantity):
                logger.debug("%s: quantity %s outside [%s, %s]", symbol, quantity, asset.min_quantity, asset.max_quantity)
                return None
        sl, tp = calculate_sl_tp(analysis.side, price, self.sl_pct, self.tp_pct)
        position = Position(
            id=next(self._ids),
            symbol=symbol,
            side=analysis.side,
            entry_price=price,
            entry_signal=analysis.entry_signal,
            size=size,
            quantity=quantity,
            sl=sl,
            tp=tp,
        )
        self._open[symbol] = position
        self.account.log_new_position(position)
        logger.info("Opened %s %s size=%.2f entry=%s sl=%s tp=%s", position.side.value, symbol, size, price, sl, tp)
        return position

    def check_close(self, symbol: str, price: float) -> Optional[Position]:
        """Close the symbol's open position if `price` crossed its SL or TP."""
        position = self._open.get(symbol)
        if position is None:
            return None
        reason = position.evaluate_close(price)
        if reason is None:
            return None
        return self.close_position(position, price, reason)

    def close_position(self, position: Position, price: float, reason: ExitSignal) -> Position:
        position.close(price, reason)
        del self._open[position.symbol]
        self._closed.append(position)
        self.account.log_closed_position(position)
        logger.info("Closed %s %s via %s at %s net_pnl=%.4f pnl=%.2f%%", position.side.value, position.symbol, reason.value, price, position.net_pnl, position.pnl)
        return position

    def get(self, symbol: str) -> Optional[Position]:
        return self._open.get(symbol)

    def open_positions(self) -> List[Position]:
        return list(self._open.values())

    def closed_positions(self) -> List[Position]:
        return list(self._closed)

    def has_free_slot(self) -> bool:
        return len(self._open) < self.max_positions
