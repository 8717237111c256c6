import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from hermes.models.market_models import CandleUpdate

logger = logging.getLogger("binance_ws")

MAX_STREAMS_PER_CONNECTION = 200
MAX_RECONNECT_DELAY = 60
PING_INTERVAL = 20


def parse_kline_message(message) -> Optional[CandleUpdate]:
    """Turn a combined-stream kline payload into a CandleUpdate (None for anything else)."""
    try:
        payload = json.loads(message) if isinstance(message, (str, bytes)) else message
        data = payload.get("data", payload)
        if data.get("e") != "kline" or "k" not in data:
            return None
        k = data["k"]
        return CandleUpdate(
            symbol=data.get("s", k.get("s")),
            open=float(k["o"]),
            high=float(k["h"]),
            low=float(k["l"]),
            close=float(k["c"]),
            is_final=bool(k["x"]),
            ts=datetime.fromtimestamp(int(k["t"]) / 1000, tz=timezone.utc),
        )
    except (KeyError, ValueError, TypeError, AttributeError) as e:
        # json.JSONDecodeError is a ValueError
        logger.warning("Malformed kline message (%s): %r", e, message)
        return None


class BinanceKlineStream:
    """Kline stream for many symbols over combined-stream connections.

    Each received candle is awaited through `on_candle` before the next
    message of that connection is read.
    """

    def __init__(self, ws_url: str, interval: str):
        self.ws_url = ws_url
        self.interval = interval
        self.on_candle: Optional[Callable[[CandleUpdate], Awaitable[None]]] = None
        self._symbols: List[str] = []
        self._tasks: List[asyncio.Task] = []
        self._running = False

    def stream_urls(self) -> List[str]:
        streams = [f"{s.lower()}@kline_{self.interval}" for s in self._symbols]
        return [
            f"{self.ws_url}?streams=" + "/".join(streams[i:i + MAX_STREAMS_PER_CONNECTION])
            for i in range(0, len(streams), MAX_STREAMS_PER_CONNECTION)
        ]

    async def subscribe(self, symbols: List[str]):
        if self._running:
            raise RuntimeError("stream already running")
        self._symbols = list(symbols)
        self._running = True
        self._tasks = [asyncio.create_task(self._connection_loop(url)) for url in self.stream_urls()]
        logger.info("Subscribed to %d kline streams over %d connections", len(self._symbols), len(self._tasks))

    async def disconnect(self):
        self._running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Kline streams disconnected")

    async def _connection_loop(self, url: str):
        delay = 1
        while self._running:
            try:
                async with websockets.connect(url, ping_interval=PING_INTERVAL, ping_timeout=10, close_timeout=5) as ws:
                    delay = 1
                    async for message in ws:
                        update = parse_kline_message(message)
                        if update is not None:
                            await self._dispatch(update)
            except asyncio.CancelledError:
                raise
            except (ConnectionClosed, WebSocketException, OSError) as e:
                logger.warning("Kline stream disconnected: %s (retry in %ds)", e, delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, MAX_RECONNECT_DELAY)
            except Exception:
                logger.exception("Kline stream failed (retry in %ds)", delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, MAX_RECONNECT_DELAY)

    async def _dispatch(self, update: CandleUpdate):
        """A failing handler costs that one update, never the connection."""
        if not self.on_candle:
            return
        try:
            await self.on_candle(update)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Candle handler failed for %s", update.symbol)
