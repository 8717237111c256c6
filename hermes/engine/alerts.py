"""Static price alerts: loading from JSON and matching against live prices."""
import json
import logging
import operator
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Literal, Optional, Tuple

from pydantic import BaseModel, TypeAdapter

logger = logging.getLogger("alerts")

_COMPARATORS: Dict[str, Callable[[float, float], bool]] = {
    ">=": operator.ge,
    "<=": operator.le,
    ">": operator.gt,
    "<": operator.lt,
}


class Alert(BaseModel):
    symbol: str
    price: float
    condition: Literal[">=", "<=", ">", "<"]
    type: str = "price"
    notified: bool = False

    def check(self, current_price: float) -> Optional[float]:
        """Fire once: returns the target price the first time the condition holds."""
        if self.notified or self.type != "price":
            return None
        if _COMPARATORS[self.condition](current_price, self.price):
            self.notified = True
            return self.price
        return None


class AlertMatcher:
    """Holds alerts grouped by symbol so each update only scans its own alerts."""
    def __init__(self, alerts: Iterable[Alert] = ()):
        self._by_symbol: Dict[str, List[Alert]] = {}
        for alert in alerts:
            self._by_symbol.setdefault(alert.symbol, []).append(alert)

    def check(self, symbol: str, current_price: float) -> List[Tuple[Alert, float]]:
        matches = []
        for alert in self._by_symbol.get(symbol, []):
            target = alert.check(current_price)
            if target is not None:
                matches.append((alert, target))
        return matches

    def alerts(self) -> List[Alert]:
        return [a for group in self._by_symbol.values() for a in group]

    def pending(self) -> int:
        return sum(1 for a in self.alerts() if not a.notified)


_alert_list = TypeAdapter(List[Alert])


def load_alerts(path: Path, tracked_symbols: Iterable[str]) -> Tuple[List[Alert], List[str]]:
    """Load alerts from a JSON list, keeping only symbols tracked this session.

    Returns (alerts, dropped_symbols). A missing file yields no alerts.
    """
    if not path.exists():
        logger.info("No alerts file at %s", path)
        return [], []
    alerts = _alert_list.validate_python(json.loads(path.read_text()))
    tracked = set(tracked_symbols)
    kept, dropped = [], []
    for alert in alerts:
        if alert.symbol in tracked:
            kept.append(alert)
        else:
            dropped.append(alert.symbol)
    if dropped:
        logger.warning("Dropped alerts for untracked symbols: %s", ", ".join(sorted(set(dropped))))
    return kept, dropped
