from typing import Dict, Iterable, List

import numpy as np


class CandleBufferError(ValueError):
    """Raised when a symbol's close history cannot back a full buffer."""


class CandleBuffers:
    """
    Per-symbol rolling window of the last N closes.
    The last slot always holds the close of the candle still forming; a final
    candle commits it by rotating the window left and opening a new slot.
    """
    def __init__(self, size: int = 200):
        if size < 3:
            raise ValueError("buffer size must allow a 3-sample cross window")
        self.size = size
        self._closes: Dict[str, np.ndarray] = {}

    def allocate(self, symbols: Iterable[str]) -> None:
        """Reserve one buffer per symbol so concurrent backfills never share state."""
        for symbol in symbols:
            self._closes.setdefault(symbol, np.full(self.size, np.nan))

    def load(self, symbol: str, closes: List[float]) -> None:
        if len(closes) != self.size:
            raise CandleBufferError(f"{symbol}: expected {self.size} closes, got {len(closes)}")
        buf = self._closes.get(symbol)
        if buf is None:
            buf = np.empty(self.size)
            self._closes[symbol] = buf
        buf[:] = closes

    def update(self, symbol: str, price: float, is_final: bool) -> None:
        buf = self._closes.get(symbol)
        if buf is None:
            raise CandleBufferError(f"{symbol}: no buffer")
        if is_final:
            buf[:-1] = buf[1:]
        buf[-1] = price
        assert len(buf) == self.size

    def drop(self, symbol: str) -> None:
        self._closes.pop(symbol, None)

    def closes(self, symbol: str) -> np.ndarray:
        """Read-only view of the symbol's closes, oldest first."""
        view = self._closes[symbol].view()
        view.flags.writeable = False
        return view

    def last_price(self, symbol: str) -> float:
        return float(self._closes[symbol][-1])

    def last_prices(self) -> Dict[str, float]:
        return {symbol: float(buf[-1]) for symbol, buf in self._closes.items()}

    def is_ready(self, symbol: str) -> bool:
        buf = self._closes.get(symbol)
        return buf is not None and not np.isnan(buf).any()

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._closes

    def __len__(self) -> int:
        return len(self._closes)

    def symbols(self) -> List[str]:
        return list(self._closes.keys())
