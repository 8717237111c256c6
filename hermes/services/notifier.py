import logging
from typing import Any, Dict, Optional

import httpx

from hermes.engine.signals import Analysis, Cross, RSISignal, Side, Trend
from hermes.execution.positions import Position
from hermes.models.market_models import Asset
from hermes.services.metrics import notification_failures_counter

logger = logging.getLogger("notifier")

TELEGRAM_API = "https://api.telegram.org"

EMOJIS = {
    Side.BUY: "⬆️🚀",
    Side.SELL: "⬇️💣",
    Cross.BULLISH: "🐗",
    Cross.BEARISH: "🐻",
    Trend.BULLISH: "🐗",
    Trend.BULLISH_X2: "🐗🐗",
    Trend.BEARISH: "🐻",
    Trend.BEARISH_X2: "🐻🐻",
    RSISignal.OVERBOUGHT: "📈",
    RSISignal.OVERBOUGHT_X2: "📈📈",
    RSISignal.OVERBOUGHT_X3: "📈📈📈",
    RSISignal.OVERSOLD: "📉",
    RSISignal.OVERSOLD_X2: "📉📉",
    RSISignal.OVERSOLD_X3: "📉📉📉",
}


def format_session_started(interval: str, symbol_count: int, mode: str) -> str:
    return (
        "🔔🔔 *NEW SESSION STARTED* 🔔🔔\n\n"
        f"    ⏱ interval: >>>*{interval}*<<<\n"
        f"    🪙 symbols: >>>*{symbol_count}*<<<\n"
        f"    ⚙️ mode: >>>*{mode}*<<<"
    )


def format_alert(symbol: str, target: float, price: float) -> str:
    return f"🔔 *{symbol}* reached alert price {target} (now {price})"


def format_signal(analysis: Analysis) -> str:
    text = f"⚡️ {analysis.symbol}"
    if analysis.cross != Cross.NA:
        text += f" | _{analysis.cross.value} EMA cross_ {EMOJIS[analysis.cross]}"
    if analysis.rsi_signal != RSISignal.NA:
        text += f" | _RSI {analysis.rsi_signal.value}_ {EMOJIS[analysis.rsi_signal]}"
    text += (
        "\n"
        f"    - Trend: _{analysis.trend.value}_ {EMOJIS.get(analysis.trend, '')}\n"
        f"    - RSI: {analysis.rsi:.2f}\n\n"
        f"    🔮 Side: *{analysis.side.value}* {EMOJIS.get(analysis.side, '')}"
    )
    return text


def _price(value: float, asset: Optional[Asset]) -> str:
    return asset.format_price(value) if asset is not None else f"{value}"


def format_position_opened(position: Position, account: Dict[str, Any], asset: Optional[Asset] = None) -> str:
    return (
        f"🟢 *OPENED {position.side.value} {position.symbol}* {EMOJIS.get(position.side, '')}\n"
        f"    - Signal: _{position.entry_signal}_\n"
        f"    - Entry: {_price(position.entry_price, asset)}\n"
        f"    - Size: {position.size:.2f} USDT\n"
        f"    - SL: {_price(position.sl, asset)} | TP: {_price(position.tp, asset)}\n"
        f"    💰 Available: {account['available_balance']:.2f} USDT"
    )


def format_position_closed(position: Position, account: Dict[str, Any], asset: Optional[Asset] = None) -> str:
    icon = "✅" if position.net_pnl >= 0 else "❌"
    return (
        f"{icon} *CLOSED {position.side.value} {position.symbol}* via {position.exit_signal.value}\n"
        f"    - Entry: {_price(position.entry_price, asset)} | Exit: {_price(position.exit_price, asset)}\n"
        f"    - PNL: {position.net_pnl:.2f} USDT ({position.pnl:.2f}%)\n"
        f"    💰 Total: {account['total_balance']:.2f} USDT | W/L: {account['wins']}/{account['losses']}"
    )


def format_session_ended(account: Dict[str, Any], unrealized: Optional[Dict[str, float]] = None) -> str:
    text = (
        "🏁 *SESSION ENDED* 🏁\n\n"
        f"    - Initial balance: {account['initial_balance']:.2f} USDT\n"
        f"    - Total balance: {account['total_balance']:.2f} USDT\n"
        f"    - Net PNL: {account['net_pnl']:.2f} USDT ({account['pnl']:.2f}%)\n"
        f"    - Wins/Losses: {account['wins']}/{account['losses']}\n"
        f"    - Open positions: {account['open_positions']}"
    )
    if unrealized:
        text += f"\n    - Unrealized PNL: {unrealized['net_pnl']:.2f} USDT ({unrealized['pnl']:.2f}%)"
    return text


class Notifier:
    def __init__(self, token: str = "", chat_id: str = "", client: Optional[httpx.AsyncClient] = None):
        self.token = token
        self.chat_id = chat_id
        self.client = client or httpx.AsyncClient(timeout=5.0)

    async def close(self):
        await self.client.aclose()

    async def send(self, text: str) -> bool:
        if not self.token or not self.chat_id:
            logger.info("Notification: %s", text)
            return False
        try:
            resp = await self.client.post(
                f"{TELEGRAM_API}/bot{self.token}/sendMessage",
                json={"chat_id": self.chat_id, "text": text, "parse_mode": "Markdown"},
            )
            resp.raise_for_status()
            return True
        except Exception:
            notification_failures_counter.inc()
            logger.exception("Notifier failed")
            return False

    async def notify_session_started(self, interval: str, symbol_count: int, mode: str) -> bool:
        return await self.send(format_session_started(interval, symbol_count, mode))

    async def notify_alert(self, symbol: str, target: float, price: float) -> bool:
        return await self.send(format_alert(symbol, target, price))

    async def notify_signal(self, analysis: Analysis) -> bool:
        return await self.send(format_signal(analysis))

    async def notify_position_opened(self, position: Position, account: Dict[str, Any], asset: Optional[Asset] = None) -> bool:
        return await self.send(format_position_opened(position, account, asset))

    async def notify_position_closed(self, position: Position, account: Dict[str, Any], asset: Optional[Asset] = None) -> bool:
        return await self.send(format_position_closed(position, account, asset))

    async def notify_session_ended(self, account: Dict[str, Any], unrealized: Optional[Dict[str, float]] = None) -> bool:
        return await self.send(format_session_ended(account, unrealized))
