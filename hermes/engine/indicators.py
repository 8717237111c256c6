"""Indicator calculations over a close-price window.

EMA is seeded with the SMA of the first `period` closes and RSI uses Wilder
smoothing, so values line up with TA-Lib's Ema/Rsi output index for index.
Positions before the first computable value are NaN.
"""
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
import pandas as pd


class IndicatorError(ValueError):
    """Raised when the close window cannot produce finite indicator values."""


def ema_series(closes: Sequence[float], period: int) -> pd.Series:
    s = pd.Series(closes, dtype=float)
    out = pd.Series(np.nan, index=s.index)
    if period <= 0 or len(s) < period:
        return out
    seeded = s.iloc[period - 1:].copy()
    seeded.iloc[0] = s.iloc[:period].mean()
    out.iloc[period - 1:] = seeded.ewm(alpha=2.0 / (period + 1), adjust=False).mean().to_numpy()
    return out


def rsi_series(closes: Sequence[float], period: int = 14) -> pd.Series:
    s = pd.Series(closes, dtype=float)
    out = pd.Series(np.nan, index=s.index)
    if period <= 0 or len(s) < period + 1:
        return out
    change = s.diff()
    gains = change.clip(lower=0.0)
    losses = (-change).clip(lower=0.0)

    def wilder(values: pd.Series) -> pd.Series:
        seeded = values.iloc[period:].copy()
        seeded.iloc[0] = values.iloc[1:period + 1].mean()
        return seeded.ewm(alpha=1.0 / period, adjust=False).mean()

    avg_gain = wilder(gains).to_numpy()
    avg_loss = wilder(losses).to_numpy()
    with np.errstate(divide="ignore", invalid="ignore"):
        rsi = np.where(avg_loss == 0, 100.0, 100.0 - 100.0 / (1.0 + avg_gain / avg_loss))
    out.iloc[period:] = rsi
    return out


@dataclass(frozen=True)
class IndicatorValues:
    """Latest indicator readings consumed by the signal engine."""
    ema_fast: Tuple[float, float, float]   # last 3 samples, oldest first
    ema_slow: Tuple[float, float, float]
    ema_trend_short: float
    ema_trend_long: float
    rsi: float


def compute_indicators(closes: Sequence[float], fast: int = 5, slow: int = 9,
                       trend_short: int = 50, trend_long: int = 200, rsi_period: int = 14) -> IndicatorValues:
    """Compute the indicator set for the last sample of `closes`.

    Raises IndicatorError when the window is too short or produces NaN.
    """
    if len(closes) < max(fast, slow, trend_short, trend_long, rsi_period + 1, 3):
        raise IndicatorError(f"need more closes than {len(closes)}")
    # ewm carries the previous value over NaN inputs, so gaps must be caught here
    if not np.all(np.isfinite(np.asarray(closes, dtype=float))):
        raise IndicatorError("non-finite close in window")
    fast_ema = ema_series(closes, fast).iloc[-3:].to_numpy()
    slow_ema = ema_series(closes, slow).iloc[-3:].to_numpy()
    values = IndicatorValues(
        ema_fast=tuple(float(v) for v in fast_ema),
        ema_slow=tuple(float(v) for v in slow_ema),
        ema_trend_short=float(ema_series(closes, trend_short).iloc[-1]),
        ema_trend_long=float(ema_series(closes, trend_long).iloc[-1]),
        rsi=float(rsi_series(closes, rsi_period).iloc[-1]),
    )
    flat = list(values.ema_fast) + list(values.ema_slow) + [values.ema_trend_short, values.ema_trend_long, values.rsi]
    if not np.all(np.isfinite(flat)):
        raise IndicatorError("non-finite indicator value")
    return values
