import pytest

from hermes.engine.indicators import IndicatorValues
from hermes.engine.signals import (Cross, RSISignal, Side, Trend, analyze, choose_side,
                                   classify_rsi, classify_trend, detect_cross, triggers_signal)


def test_bearish_cross_on_newest_sample():
    assert detect_cross([10, 11, 9], [11, 10.5, 10]) == Cross.BEARISH


def test_bullish_cross_on_newest_sample():
    assert detect_cross([9, 9.5, 10.2], [10, 10, 10]) == Cross.BULLISH


def test_no_cross_when_sign_is_stable():
    assert detect_cross([11, 12, 13], [10, 10, 10]) == Cross.NA
    assert detect_cross([9, 9, 9], [10, 10, 10]) == Cross.NA


def test_equal_values_count_as_fast_above():
    assert detect_cross([9, 9, 10], [10, 10, 10]) == Cross.BULLISH


@pytest.mark.parametrize("shift", [-50.0, 0.5, 1000.0])
def test_cross_is_shift_invariant(shift):
    fast, slow = [10, 11, 9], [11, 10.5, 10]
    shifted = detect_cross([f + shift for f in fast], [s + shift for s in slow])
    assert shifted == detect_cross(fast, slow)


def test_trend_classification():
    assert classify_trend(10, 9, 8) == Trend.BULLISH_X2
    assert classify_trend(10, 11, 9) == Trend.BULLISH
    assert classify_trend(10, 9, 11) == Trend.BULLISH
    assert classify_trend(10, 11, 12) == Trend.BEARISH_X2


@pytest.mark.parametrize("rsi,expected", [
    (91.3, RSISignal.OVERBOUGHT_X3),
    (89.9, RSISignal.OVERBOUGHT_X3),
    (85.0, RSISignal.OVERBOUGHT_X2),
    (70.0, RSISignal.OVERBOUGHT),
    (50.0, RSISignal.NA),
    (30.2, RSISignal.NA),
    (25.0, RSISignal.OVERSOLD_X2),
    (15.0, RSISignal.OVERSOLD_X2),
    (10.1, RSISignal.OVERSOLD_X3),
    (3.0, RSISignal.OVERSOLD_X3),
])
def test_rsi_buckets(rsi, expected):
    assert classify_rsi(rsi) == expected


def test_side_requires_discount_or_extension():
    assert choose_side(90, 100, Cross.BULLISH) == Side.BUY
    assert choose_side(110, 100, Cross.BULLISH) == Side.NA
    assert choose_side(110, 100, Cross.BEARISH) == Side.SELL
    assert choose_side(90, 100, Cross.BEARISH) == Side.NA
    assert choose_side(90, 100, Cross.NA) == Side.NA


def _indicators(fast, slow, rsi=50.0, short=100.0, long=105.0):
    return IndicatorValues(ema_fast=tuple(fast), ema_slow=tuple(slow),
                           ema_trend_short=short, ema_trend_long=long, rsi=rsi)


def test_analyze_counts_cross_and_rsi():
    analysis = analyze("BTCUSDT", 95.0, _indicators([9, 9.5, 10.2], [10, 10, 10], rsi=25.004))
    assert analysis.cross == Cross.BULLISH
    assert analysis.rsi == 25.0
    assert analysis.rsi_signal == RSISignal.OVERSOLD_X2
    assert analysis.signal_count == 2
    assert analysis.trend == Trend.BEARISH_X2
    assert analysis.side == Side.BUY
    assert analysis.entry_signal == "bullish EMA cross"


def test_analyze_quiet_market():
    analysis = analyze("BTCUSDT", 95.0, _indicators([11, 12, 13], [10, 10, 10]))
    assert analysis.signal_count == 0
    assert analysis.side == Side.NA
    assert analysis.to_dict()["cross"] == "NA"


def test_trigger_rule_uses_last_acted_side():
    analysis = analyze("BTCUSDT", 95.0, _indicators([9, 9.5, 10.2], [10, 10, 10]))
    assert triggers_signal(analysis, {})
    assert not triggers_signal(analysis, {"BTCUSDT": Side.BUY})
    assert triggers_signal(analysis, {"BTCUSDT": Side.SELL})


def test_rsi_only_signal_does_not_trigger_without_side():
    analysis = analyze("BTCUSDT", 95.0, _indicators([11, 12, 13], [10, 10, 10], rsi=95.0))
    assert analysis.signal_count == 1
    assert not triggers_signal(analysis, {})
