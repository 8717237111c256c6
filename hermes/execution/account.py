"""Account ledger: balances and realized PNL aggregated over positions.

The ledger keeps its own copy of the fields it needs from each position
(keyed by position id) and never mutates positions. After every mutation
allocated + available == total must hold.
"""
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Tuple

from hermes.engine.signals import Side
from hermes.execution.positions import pnl_ratio

logger = logging.getLogger("account")

BALANCE_TOLERANCE = 1e-9


@dataclass(frozen=True)
class PositionEntry:
    id: int
    symbol: str
    side: Side
    entry_price: float
    size: float


@dataclass(frozen=True)
class ClosedEntry:
    id: int
    symbol: str
    size: float
    net_pnl: float


class Account:
    def __init__(self, initial_balance: float):
        if initial_balance < 0:
            raise ValueError("initial balance must not be negative")
        self.initial_balance = initial_balance
        self.total_balance = initial_balance
        self.allocated_balance = 0.0
        self.available_balance = initial_balance
        self.net_pnl = 0.0
        self.wins = 0
        self.losses = 0
        self._open: Dict[int, PositionEntry] = {}
        self._closed: List[ClosedEntry] = []

    @property
    def pnl(self) -> float:
        """Cumulative PNL as a percentage of the initial balance."""
        if self.initial_balance == 0:
            return 0.0
        return self.net_pnl / self.initial_balance * 100

    @property
    def open_position_ids(self) -> List[int]:
        return list(self._open.keys())

    @property
    def closed_position_ids(self) -> List[int]:
        return [entry.id for entry in self._closed]

    def log_new_position(self, position) -> None:
        if position.id in self._open:
            raise ValueError(f"position {position.id} already logged")
        self._open[position.id] = PositionEntry(
            id=position.id,
            symbol=position.symbol,
            side=position.side,
            entry_price=position.entry_price,
            size=position.size,
        )
        self.allocated_balance += position.size
        self.available_balance -= position.size
        self._check_balance()

    def log_closed_position(self, position) -> None:
        entry = self._open.pop(position.id, None)
        if entry is None:
            raise ValueError(f"position {position.id} is not open in the ledger")
        net_pnl = position.net_pnl
        self.allocated_balance -= entry.size
        self.available_balance += entry.size + net_pnl
        self.total_balance += net_pnl
        self.net_pnl += net_pnl
        if net_pnl >= 0:
            self.wins += 1
        else:
            self.losses += 1
        self._closed.append(ClosedEntry(id=entry.id, symbol=entry.symbol, size=entry.size, net_pnl=net_pnl))
        self._check_balance()
        logger.debug("Account total=%.2f available=%.2f net_pnl=%.2f wins=%d losses=%d", self.total_balance, self.available_balance, self.net_pnl, self.wins, self.losses)

    def unrealized_pnl(self, prices: Mapping[str, float]) -> Tuple[float, float]:
        """Return (currency, percentage of allocated balance) for open positions at `prices`.

        Positions whose symbol has no price are valued at entry (zero PNL).
        """
        total = 0.0
        for entry in self._open.values():
            price = prices.get(entry.symbol, entry.entry_price)
            total += pnl_ratio(entry.side, entry.entry_price, price) * entry.size
        if self.allocated_balance <= 0:
            return total, 0.0
        return total, total / self.allocated_balance * 100

    def open_position_pnls(self, prices: Mapping[str, float]) -> Dict[str, Tuple[float, float]]:
        """Per-symbol (currency, percentage) PNL of each open position."""
        pnls = {}
        for entry in self._open.values():
            price = prices.get(entry.symbol, entry.entry_price)
            ratio = pnl_ratio(entry.side, entry.entry_price, price)
            pnls[entry.symbol] = (ratio * entry.size, ratio * 100)
        return pnls

    def summary(self) -> Dict[str, float]:
        return {
            "initial_balance": self.initial_balance,
            "total_balance": self.total_balance,
            "allocated_balance": self.allocated_balance,
            "available_balance": self.available_balance,
            "net_pnl": self.net_pnl,
            "pnl": self.pnl,
            "wins": self.wins,
            "losses": self.losses,
            "open_positions": len(self._open),
            "closed_positions": len(self._closed),
        }

    def _check_balance(self) -> None:
        assert math.isclose(
            self.allocated_balance + self.available_balance, self.total_balance,
            rel_tol=BALANCE_TOLERANCE, abs_tol=BALANCE_TOLERANCE,
        ), f"unbalanced ledger: {self.allocated_balance} + {self.available_balance} != {self.total_balance}"
