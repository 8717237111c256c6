"""Signal engine: turns the latest indicator readings into a classification.

Cross: sign of fast-vs-slow EMA over the last three samples; a sign change
that ends on the newest sample is a cross in that sample's direction.
Trend: price against the short and long trend EMAs.
RSI: six fixed thresholds, three overbought and three oversold severities.
Side: BUY a discounted asset (below the long EMA) on a bullish cross, SELL an
extended one (above the long EMA) on a bearish cross. EMAs lag, so the cross
alone never picks a side.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Sequence

from hermes.engine.indicators import IndicatorValues


RSI_HOT_L1 = 69.9
RSI_HOT_L2 = 79.9
RSI_HOT_L3 = 89.9

RSI_COLD_L1 = 30.1
RSI_COLD_L2 = 20.1
RSI_COLD_L3 = 10.1


class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    NA = "NA"


class Cross(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NA = "NA"


class Trend(str, Enum):
    BULLISH = "bullish"
    BULLISH_X2 = "bullish-X2"
    BEARISH = "bearish"
    BEARISH_X2 = "bearish-X2"
    NA = "NA"


class RSISignal(str, Enum):
    OVERBOUGHT = "overbought"
    OVERBOUGHT_X2 = "overbought-X2"
    OVERBOUGHT_X3 = "overbought-X3"
    OVERSOLD = "oversold"
    OVERSOLD_X2 = "oversold-X2"
    OVERSOLD_X3 = "oversold-X3"
    NA = "NA"


@dataclass(frozen=True)
class Analysis:
    symbol: str
    price: float
    rsi: float  # rounded to 2 digits
    rsi_signal: RSISignal
    ema_trend_short: float
    ema_trend_long: float
    trend: Trend
    cross: Cross
    signal_count: int
    side: Side

    @property
    def entry_signal(self) -> str:
        return f"{self.cross.value} EMA cross"

    def to_dict(self):
        return {
            "symbol": self.symbol,
            "price": self.price,
            "rsi": self.rsi,
            "rsi_signal": self.rsi_signal.value,
            "ema_trend_short": self.ema_trend_short,
            "ema_trend_long": self.ema_trend_long,
            "trend": self.trend.value,
            "cross": self.cross.value,
            "signal_count": self.signal_count,
            "side": self.side.value,
        }


def detect_cross(fast: Sequence[float], slow: Sequence[float]) -> Cross:
    """Classify a cross on the newest of three aligned fast/slow samples."""
    delta = [1 if f >= s else -1 for f, s in zip(fast[-3:], slow[-3:])]
    # All three deltas equal ([1,1,1] or [-1,-1,-1]) means no cross.
    if sum(delta) % 3 != 0:
        return Cross.BULLISH if delta[2] == 1 else Cross.BEARISH
    return Cross.NA


def classify_trend(price: float, ema_short: float, ema_long: float) -> Trend:
    if price >= ema_short and price >= ema_long:
        return Trend.BULLISH_X2
    if price >= ema_short or price >= ema_long:
        return Trend.BULLISH
    if price < ema_short and price < ema_long:
        return Trend.BEARISH_X2
    if price < ema_short or price < ema_long:
        return Trend.BEARISH
    return Trend.NA


def classify_rsi(rsi: float) -> RSISignal:
    if rsi >= RSI_HOT_L3:
        return RSISignal.OVERBOUGHT_X3
    if rsi >= RSI_HOT_L2:
        return RSISignal.OVERBOUGHT_X2
    if rsi >= RSI_HOT_L1:
        return RSISignal.OVERBOUGHT
    if rsi <= RSI_COLD_L3:
        return RSISignal.OVERSOLD_X3
    if rsi <= RSI_COLD_L2:
        return RSISignal.OVERSOLD_X2
    # The mild band (20.1, 30.1] reports as the second severity.
    if rsi <= RSI_COLD_L1:
        return RSISignal.OVERSOLD_X2
    return RSISignal.NA


def choose_side(price: float, ema_long: float, cross: Cross) -> Side:
    if price < ema_long and cross == Cross.BULLISH:
        return Side.BUY
    if price > ema_long and cross == Cross.BEARISH:
        return Side.SELL
    return Side.NA


def analyze(symbol: str, price: float, indicators: IndicatorValues) -> Analysis:
    """Build the point-in-time Analysis snapshot for `symbol` at `price`."""
    signal_count = 0
    cross = detect_cross(indicators.ema_fast, indicators.ema_slow)
    if cross != Cross.NA:
        signal_count += 1
    trend = classify_trend(price, indicators.ema_trend_short, indicators.ema_trend_long)
    rsi = round(indicators.rsi, 2)
    rsi_signal = classify_rsi(rsi)
    if rsi_signal != RSISignal.NA:
        signal_count += 1
    side = choose_side(price, indicators.ema_trend_long, cross)
    return Analysis(
        symbol=symbol,
        price=price,
        rsi=rsi,
        rsi_signal=rsi_signal,
        ema_trend_short=indicators.ema_trend_short,
        ema_trend_long=indicators.ema_trend_long,
        trend=trend,
        cross=cross,
        signal_count=signal_count,
        side=side,
    )


def triggers_signal(analysis: Analysis, sent_signals: Mapping[str, Side]) -> bool:
    """True when there is a signal with a side that was not already acted on."""
    last: Optional[Side] = sent_signals.get(analysis.symbol)
    return analysis.signal_count >= 1 and analysis.side != Side.NA and last != analysis.side
