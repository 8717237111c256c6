import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from hermes.config import Settings, settings
from hermes.engine.alerts import Alert, AlertMatcher, load_alerts
from hermes.engine.candle_buffer import CandleBufferError, CandleBuffers
from hermes.engine.indicators import IndicatorError, compute_indicators
from hermes.engine.signals import Analysis, Side, analyze, triggers_signal
from hermes.execution.account import Account
from hermes.execution.executor import Executor
from hermes.execution.positions import Position, PositionLedger
from hermes.models.market_models import Asset, CandleUpdate
from hermes.providers.binance_rest import BinanceRest
from hermes.providers.binance_ws import BinanceKlineStream
from hermes.services.metrics import (alerts_counter, candle_updates_counter,
                                     positions_closed_counter,
                                     positions_opened_counter, signals_counter,
                                     tracked_symbols_gauge)
from hermes.services.notifier import Notifier
from hermes.services.risk_manager import RiskManager

logger = logging.getLogger("trading_service")


class TradingService:
    """Single dispatcher owning the session state.

    Startup backfills every symbol's candle buffer in parallel and only then
    subscribes to the kline stream. Each candle update runs buffer -> signal
    engine -> position ledger -> account ledger -> alerts under one lock, so
    ledger mutations are totally ordered and report queries never observe a
    half-applied update. Notifications and exchange orders run as background
    tasks and never gate the next update.
    """
    def __init__(self, rest=None, stream=None, notifier=None, config: Settings = settings):
        self.settings = config
        self.rest = rest or BinanceRest(config.BINANCE_APIKEY, config.BINANCE_SECRETKEY, config.BINANCE_REST_URL)
        self.stream = stream or BinanceKlineStream(config.BINANCE_WS_URL, config.INTERVAL)
        self.notifier = notifier or Notifier(config.telegram_token, config.telegram_chat_id)
        self.executor = Executor(self.rest)
        self.risk_manager = RiskManager(config.MAX_POSITIONS)
        self.real_trading = config.TRADE_SIGNALS
        self.open_positions_on_signals = config.SIMULATE_TRADES or config.TRADE_SIGNALS
        self.alerts = AlertMatcher()
        self._reset_session()
        self._lock = asyncio.Lock()
        self._pending: Set[asyncio.Task] = set()
        self._running = False
        self._sessions = 0

    @property
    def mode(self) -> str:
        if self.real_trading:
            return "trade"
        if self.open_positions_on_signals:
            return "simulate"
        return "signals"

    def _reset_session(self):
        """Fresh market and ledger state for a new session; alerts are kept."""
        self.buffers = CandleBuffers(self.settings.CANDLE_LIMIT)
        self.assets: Dict[str, Asset] = {}
        self.sent_signals: Dict[str, Side] = {}
        self.last_analysis: Dict[str, Analysis] = {}
        # last good price of dropped symbols that still hold a position
        self.stale_prices: Dict[str, float] = {}
        self._init_ledgers(self.settings.INITIAL_BALANCE)

    def _init_ledgers(self, initial_balance: float):
        self.account = Account(initial_balance)
        self.ledger = PositionLedger(
            self.account,
            max_positions=self.settings.MAX_POSITIONS,
            sl_pct=self.settings.STOP_LOSS_PCT,
            tp_pct=self.settings.TAKE_PROFIT_PCT,
        )

    async def start(self):
        if self._running:
            logger.info("Service already running")
            return
        if self._sessions:
            self._reset_session()
        assets = await self.rest.discover_assets()
        await self.backfill(assets)
        if self.real_trading:
            wallet = await self.rest.fetch_balance()
            self._init_ledgers(self.risk_manager.wallet_trading_balance(wallet, self.settings.BALANCE_MARGIN_PCT))
        alerts, _ = load_alerts(Path(self.settings.ALERTS_FILE), self.buffers.symbols())
        self.alerts = AlertMatcher(self._carry_alert_state(alerts))
        symbols = self.buffers.symbols()
        self._spawn(self.notifier.notify_session_started(self.settings.INTERVAL, len(symbols), self.mode))
        self.stream.on_candle = self.on_candle_update
        await self.stream.subscribe(symbols)
        self._running = True
        self._sessions += 1
        logger.info("Service started interval=%s symbols=%d mode=%s balance=%.2f",
                    self.settings.INTERVAL, len(symbols), self.mode, self.account.initial_balance)

    def _carry_alert_state(self, alerts: List[Alert]) -> List[Alert]:
        """Alerts that fired in an earlier session stay fired when reloaded."""
        fired = {(a.symbol, a.price, a.condition, a.type) for a in self.alerts.alerts() if a.notified}
        for alert in alerts:
            if (alert.symbol, alert.price, alert.condition, alert.type) in fired:
                alert.notified = True
        return alerts

    async def backfill(self, assets: List[Asset]):
        """Fill one pre-allocated buffer per symbol; symbols without a full history are dropped."""
        limit = self.settings.CANDLE_LIMIT
        self.buffers.allocate(a.symbol for a in assets)
        semaphore = asyncio.Semaphore(self.settings.BACKFILL_CONCURRENCY)

        async def fill(asset: Asset):
            async with semaphore:
                try:
                    closes = await self.rest.fetch_closes(asset.symbol, self.settings.INTERVAL, limit)
                    self.buffers.load(asset.symbol, closes)
                    self.assets[asset.symbol] = asset
                except CandleBufferError as e:
                    logger.warning("Dropping %s: %s", asset.symbol, e)
                    self.buffers.drop(asset.symbol)
                except Exception:
                    logger.exception("Backfill failed for %s, dropping it", asset.symbol)
                    self.buffers.drop(asset.symbol)

        await asyncio.gather(*(fill(a) for a in assets))
        tracked_symbols_gauge.set(len(self.buffers))
        logger.info("Backfilled %d of %d symbols with %d closes", len(self.buffers), len(assets), limit)

    async def stop(self):
        if not self._running:
            return
        await self.stream.disconnect()
        async with self._lock:
            open_symbols = [p.symbol for p in self.ledger.open_positions()]
            account = self.account.summary()
            unrealized = self._unrealized()
        if self.real_trading:
            for symbol in open_symbols:
                asset = self.assets.get(symbol)
                if asset is not None:
                    await self.executor.close_order(symbol, asset)
        await self.flush()
        await self.notifier.notify_session_ended(account, unrealized)
        self._running = False
        logger.info("Service stopped: %s", account)

    async def close(self):
        await self.stop()
        await self.rest.close()
        await self.notifier.close()

    async def flush(self):
        """Wait for in-flight notifications and orders."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _spawn(self, coro):
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def on_candle_update(self, update: CandleUpdate) -> Optional[Analysis]:
        async with self._lock:
            if update.symbol not in self.buffers:
                return None
            return self._process(update)

    def _process(self, update: CandleUpdate) -> Optional[Analysis]:
        symbol, price = update.symbol, update.close
        candle_updates_counter.inc()
        self.buffers.update(symbol, price, update.is_final)
        s = self.settings
        try:
            indicators = compute_indicators(self.buffers.closes(symbol), s.EMA_FAST, s.EMA_SLOW,
                                            s.EMA_TREND_SHORT, s.EMA_TREND_LONG, s.RSI_PERIOD)
        except IndicatorError as e:
            logger.error("Dropping %s: %s", symbol, e)
            self._drop_symbol(symbol)
            return None
        analysis = analyze(symbol, price, indicators)
        self.last_analysis[symbol] = analysis
        logger.debug("%s price=%s rsi=%.2f trend=%s cross=%s side=%s", symbol, price, analysis.rsi,
                     analysis.trend.value, analysis.cross.value, analysis.side.value)

        closed = self.ledger.check_close(symbol, price)
        if closed is not None:
            self._on_position_closed(closed)

        for alert, target in self.alerts.check(symbol, price):
            alerts_counter.inc()
            logger.info("Alert %s %s %s triggered at %s", symbol, alert.condition, target, price)
            self._spawn(self.notifier.notify_alert(symbol, target, price))

        if triggers_signal(analysis, self.sent_signals):
            self.sent_signals[symbol] = analysis.side
            signals_counter.labels(side=analysis.side.value).inc()
            logger.info("Signal %s %s (%s, RSI %s)", analysis.side.value, symbol, analysis.cross.value, analysis.rsi_signal.value)
            if self.settings.NOTIFY_ON_SIGNALS:
                self._spawn(self.notifier.notify_signal(analysis))
            if self.open_positions_on_signals:
                self._open_position(analysis)
        return analysis

    def _open_position(self, analysis: Analysis) -> Optional[Position]:
        size = self.risk_manager.slot_size(self.account.total_balance)
        asset = self.assets.get(analysis.symbol) if self.real_trading else None
        if self.real_trading and asset is None:
            return None
        position = self.ledger.open_position(analysis, size, asset)
        if position is None:
            return None
        positions_opened_counter.labels(side=position.side.value).inc()
        self._spawn(self.notifier.notify_position_opened(position, self.account.summary(), self.assets.get(position.symbol)))
        if self.real_trading:
            self._spawn(self.executor.open_order(position, asset))
        return position

    def _on_position_closed(self, position: Position):
        positions_closed_counter.labels(exit_signal=position.exit_signal.value).inc()
        self._spawn(self.notifier.notify_position_closed(position, self.account.summary(), self.assets.get(position.symbol)))
        if self.real_trading and position.symbol in self.assets:
            self._spawn(self.executor.close_order(position.symbol, self.assets[position.symbol]))

    def _drop_symbol(self, symbol: str):
        """Stop tracking `symbol`. An open position on it is kept, valued at the
        last good price, and its asset is kept so shutdown can still flatten it.
        """
        position = self.ledger.get(symbol)
        if position is not None:
            last = self.last_analysis.get(symbol)
            self.stale_prices[symbol] = last.price if last is not None else position.entry_price
            logger.warning("%s dropped with an open position; held at %s until shutdown",
                           symbol, self.stale_prices[symbol])
        else:
            self.assets.pop(symbol, None)
        self.buffers.drop(symbol)
        self.last_analysis.pop(symbol, None)
        tracked_symbols_gauge.set(len(self.buffers))

    def _prices(self) -> Dict[str, float]:
        return {**self.stale_prices, **self.buffers.last_prices()}

    def _unrealized(self) -> Dict[str, float]:
        net_pnl, pnl = self.account.unrealized_pnl(self._prices())
        return {"net_pnl": net_pnl, "pnl": pnl}

    # Read-only queries for the reporting channel.

    async def account_summary(self) -> Dict[str, Any]:
        async with self._lock:
            return self.account.summary()

    async def net_pnl(self) -> Dict[str, float]:
        async with self._lock:
            return {"net_pnl": self.account.net_pnl, "pnl": self.account.pnl}

    async def unrealized_pnl(self) -> Dict[str, float]:
        async with self._lock:
            return self._unrealized()

    async def open_positions(self) -> List[Dict[str, Any]]:
        async with self._lock:
            prices = self._prices()
            pnls = self.account.open_position_pnls(prices)
            report = []
            for position in self.ledger.open_positions():
                item = position.to_dict()
                item["price"] = prices.get(position.symbol)
                item["unrealized_net_pnl"], item["unrealized_pnl"] = pnls.get(position.symbol, (0.0, 0.0))
                report.append(item)
            return report

    async def closed_positions(self) -> List[Dict[str, Any]]:
        async with self._lock:
            return [p.to_dict() for p in self.ledger.closed_positions()]

    def status(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "interval": self.settings.INTERVAL,
            "mode": self.mode,
            "symbols": len(self.buffers),
            "open_positions": len(self.ledger.open_positions()),
            "pending_alerts": self.alerts.pending(),
            "stale_positions": sorted(self.stale_prices),
        }
