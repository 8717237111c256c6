import json

import httpx
import pytest

from hermes.providers.binance_rest import BinanceAPIError, BinanceRest, parse_asset
from hermes.providers.binance_ws import BinanceKlineStream, parse_kline_message


def raw_symbol(**overrides):
    raw = {
        "symbol": "BTCUSDT", "baseAsset": "BTC", "quoteAsset": "USDT", "contractType": "PERPETUAL",
        "underlyingType": "COIN", "status": "TRADING", "pricePrecision": 2, "quantityPrecision": 3,
        "filters": [
            {"filterType": "PRICE_FILTER", "tickSize": "0.10"},
            {"filterType": "LOT_SIZE", "minQty": "0.001", "maxQty": "1000"},
        ],
    }
    raw.update(overrides)
    return raw


def test_parse_asset_reads_lot_size():
    asset = parse_asset(raw_symbol())
    assert asset.symbol == "BTCUSDT" and asset.base_asset == "BTC"
    assert asset.min_quantity == 0.001 and asset.max_quantity == 1000.0
    assert asset.quantity_precision == 3
    assert asset.format_price(1.23456) == "1.23"


@pytest.mark.parametrize("overrides", [
    {"quoteAsset": "BUSD"},
    {"contractType": "CURRENT_QUARTER"},
    {"underlyingType": "INDEX"},
    {"status": "SETTLING"},
    {"baseAsset": "1000BTTC", "symbol": "1000BTTCUSDT"},
])
def test_parse_asset_filters_untradable(overrides):
    assert parse_asset(raw_symbol(**overrides)) is None


def kline_message(final=False, close="101.5"):
    return json.dumps({
        "stream": "btcusdt@kline_1h",
        "data": {
            "e": "kline", "s": "BTCUSDT",
            "k": {"t": 1700000000000, "o": "100", "h": "102", "l": "99", "c": close, "x": final},
        },
    })


def test_parse_kline_message():
    update = parse_kline_message(kline_message(final=True))
    assert update.symbol == "BTCUSDT"
    assert update.close == 101.5 and update.is_final
    assert update.ts.year == 2023


def test_parse_kline_message_ignores_other_events():
    assert parse_kline_message(json.dumps({"result": None, "id": 1})) is None
    assert parse_kline_message("not json") is None


def test_stream_urls_are_chunked():
    stream = BinanceKlineStream("wss://example/stream", "15m")
    stream._symbols = [f"S{i}USDT" for i in range(450)]
    urls = stream.stream_urls()
    assert len(urls) == 3
    assert urls[0].startswith("wss://example/stream?streams=s0usdt@kline_15m/")
    assert urls[2].count("@kline_15m") == 50


def make_rest(handler):
    client = httpx.AsyncClient(base_url="https://fapi.test", transport=httpx.MockTransport(handler))
    return BinanceRest("key", "secret", client=client)


@pytest.mark.asyncio
async def test_discover_and_fetch_closes():
    def handler(request: httpx.Request):
        if request.url.path == "/fapi/v1/exchangeInfo":
            return httpx.Response(200, json={"symbols": [raw_symbol(), raw_symbol(status="BREAK")]})
        assert request.url.params["limit"] == "3"
        return httpx.Response(200, json=[[0, "1", "2", "0.5", str(c)] for c in (1.5, 1.6, 1.7)])

    rest = make_rest(handler)
    assets = await rest.discover_assets()
    assert [a.symbol for a in assets] == ["BTCUSDT"]
    assert await rest.fetch_closes("BTCUSDT", "1h", 3) == [1.5, 1.6, 1.7]
    await rest.close()


@pytest.mark.asyncio
async def test_signed_request_and_api_error():
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(401, json={"code": -2015, "msg": "Invalid API-key"})

    rest = make_rest(handler)
    with pytest.raises(BinanceAPIError) as exc:
        await rest.fetch_balance()
    assert exc.value.status_code == 401 and exc.value.code == -2015
    assert seen[0].headers["X-MBX-APIKEY"] == "key"
    assert "signature" in seen[0].url.params and "timestamp" in seen[0].url.params
    await rest.close()


@pytest.mark.asyncio
async def test_close_position_sends_reduce_only_order():
    orders = []

    def handler(request: httpx.Request):
        if request.url.path == "/fapi/v2/positionRisk":
            return httpx.Response(200, json=[{"symbol": "BTCUSDT", "positionAmt": "-0.250"}])
        orders.append(request.url.params)
        return httpx.Response(200, json={"orderId": 1})

    rest = make_rest(handler)
    await rest.close_position("BTCUSDT", 3)
    assert orders[0]["side"] == "BUY"
    assert orders[0]["quantity"] == "0.250"
    assert orders[0]["reduceOnly"] == "true"
    await rest.close()


def kline_for(symbol, close="1.0"):
    return json.dumps({"data": {"e": "kline", "s": symbol,
                                "k": {"t": 1700000000000, "o": "1", "h": "1", "l": "1", "c": close, "x": False}}})


class DummyConnection:
    def __init__(self, messages):
        self.messages = messages

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            yield message


def test_parse_kline_message_tolerates_malformed_frames():
    missing_open = json.loads(kline_for("AUSDT"))
    del missing_open["data"]["k"]["o"]
    assert parse_kline_message(json.dumps(missing_open)) is None
    assert parse_kline_message("[1, 2, 3]") is None
    assert parse_kline_message(kline_for("AUSDT", close="abc")) is None


@pytest.mark.asyncio
async def test_bad_frames_and_handler_errors_do_not_stop_the_connection(monkeypatch):
    missing_open = json.loads(kline_for("XUSDT"))
    del missing_open["data"]["k"]["o"]
    messages = [kline_for("AUSDT"), json.dumps(missing_open), "[]", kline_for("FAILUSDT"), kline_for("BUSDT")]
    monkeypatch.setattr("hermes.providers.binance_ws.websockets.connect",
                        lambda url, **kwargs: DummyConnection(messages))

    stream = BinanceKlineStream("wss://example/stream", "1h")
    seen = []

    async def on_candle(update):
        if update.symbol == "FAILUSDT":
            raise RuntimeError("handler failure")
        seen.append(update.symbol)
        if update.symbol == "BUSDT":
            stream._running = False

    stream.on_candle = on_candle
    stream._running = True
    await stream._connection_loop("wss://example/stream?streams=x")
    assert seen == ["AUSDT", "BUSDT"]
