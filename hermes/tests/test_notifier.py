import json

import httpx
import pytest

from hermes.engine.signals import Analysis, Cross, RSISignal, Side, Trend
from hermes.execution.positions import ExitSignal, Position
from hermes.models.market_models import Asset
from hermes.services.notifier import (Notifier, format_position_closed, format_position_opened, format_session_ended,
                                      format_session_started, format_signal)

ACCOUNT = {
    "initial_balance": 1000.0, "total_balance": 1020.0, "allocated_balance": 0.0,
    "available_balance": 1020.0, "net_pnl": 20.0, "pnl": 2.0, "wins": 1, "losses": 0,
    "open_positions": 0, "closed_positions": 1,
}


def make_analysis():
    return Analysis(symbol="BTCUSDT", price=95.0, rsi=25.0, rsi_signal=RSISignal.OVERSOLD_X2,
                    ema_trend_short=100.0, ema_trend_long=105.0, trend=Trend.BEARISH_X2,
                    cross=Cross.BULLISH, signal_count=2, side=Side.BUY)


def test_signal_message():
    text = format_signal(make_analysis())
    assert text.startswith("⚡️ BTCUSDT")
    assert "_bullish EMA cross_ 🐗" in text
    assert "_RSI oversold-X2_ 📉📉" in text
    assert "RSI: 25.00" in text
    assert "Side: *BUY* ⬆️🚀" in text


def test_session_messages():
    assert "*1h*" in format_session_started("1h", 150, "simulate")
    ended = format_session_ended(ACCOUNT, {"net_pnl": -1.5, "pnl": -0.75})
    assert "Net PNL: 20.00 USDT (2.00%)" in ended
    assert "Unrealized PNL: -1.50 USDT (-0.75%)" in ended


def test_closed_position_message():
    position = Position(id=1, symbol="BTCUSDT", side=Side.BUY, entry_price=100.0, entry_signal="bullish EMA cross",
                        size=200.0, quantity=2.0, sl=99.0, tp=104.0)
    position.close(110.0, ExitSignal.TP)
    text = format_position_closed(position, ACCOUNT)
    assert text.startswith("✅ *CLOSED BUY BTCUSDT* via TP")
    assert "PNL: 20.00 USDT (10.00%)" in text


@pytest.mark.asyncio
async def test_send_posts_markdown_message():
    requests = []

    def handler(request: httpx.Request):
        requests.append(request)
        return httpx.Response(200, json={"ok": True})

    notifier = Notifier("token", "42", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    assert await notifier.send("hello")
    await notifier.close()
    assert requests[0].url.path == "/bottoken/sendMessage"
    body = json.loads(requests[0].content)
    assert body == {"chat_id": "42", "text": "hello", "parse_mode": "Markdown"}


@pytest.mark.asyncio
async def test_send_failure_is_swallowed():
    def handler(request: httpx.Request):
        return httpx.Response(500, json={"ok": False})

    notifier = Notifier("token", "42", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    assert await notifier.send("hello") is False
    await notifier.close()


@pytest.mark.asyncio
async def test_send_without_credentials_only_logs():
    notifier = Notifier("", "")
    assert await notifier.notify_session_started("1h", 3, "signals") is False
    await notifier.close()


def test_position_prices_use_asset_precision():
    position = Position(id=1, symbol="DOGEUSDT", side=Side.BUY, entry_price=0.123456, entry_signal="bullish EMA cross",
                        size=200.0, quantity=1620.0, sl=0.12222144, tp=0.12839424)
    asset = Asset("DOGE", "DOGEUSDT", min_quantity=1.0, max_quantity=1e7, price_precision=5, quantity_precision=0)
    text = format_position_opened(position, ACCOUNT, asset)
    assert "Entry: 0.12346" in text
    assert "SL: 0.12222 | TP: 0.12839" in text
    assert "—" not in text
    assert "Entry: 0.123456" in format_position_opened(position, ACCOUNT)
