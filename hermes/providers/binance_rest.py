import hashlib
import hmac
import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from hermes.models.market_models import Asset

logger = logging.getLogger("binance_rest")

EXCLUDED_BASE_ASSETS = {"1000BTTC"}


class BinanceAPIError(Exception):
    def __init__(self, status_code: int, code: Optional[int], message: str):
        super().__init__(f"Binance API error {status_code} (code={code}): {message}")
        self.status_code = status_code
        self.code = code
        self.message = message


def parse_asset(raw: Dict[str, Any]) -> Optional[Asset]:
    """Build an Asset from an exchangeInfo symbol entry, or None when it is not tradable here.

    Only USDT-quoted, perpetual, coin-underlying symbols currently trading qualify.
    """
    if not (raw.get("quoteAsset") == "USDT" and raw.get("contractType") == "PERPETUAL"
            and raw.get("underlyingType") == "COIN" and raw.get("status") == "TRADING"
            and raw.get("baseAsset") not in EXCLUDED_BASE_ASSETS):
        return None
    lot_size = next((f for f in raw.get("filters", []) if f.get("filterType") == "LOT_SIZE"), {})
    return Asset(
        base_asset=raw["baseAsset"],
        symbol=raw["symbol"],
        min_quantity=float(lot_size.get("minQty", 0.0)),
        max_quantity=float(lot_size.get("maxQty", float("inf"))),
        price_precision=int(raw.get("pricePrecision", 2)),
        quantity_precision=int(raw.get("quantityPrecision", 0)),
    )


class BinanceRest:
    """Async client for the Binance USD-M futures REST API."""

    def __init__(self, api_key: str = "", api_secret: str = "", base_url: str = "https://fapi.binance.com",
                 client: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key
        self.api_secret = api_secret
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=15.0)

    async def close(self):
        await self.client.aclose()

    def _sign(self, params: Dict[str, Any]) -> Dict[str, Any]:
        params = dict(params, timestamp=int(time.time() * 1000))
        query = urlencode(params)
        params["signature"] = hmac.new(self.api_secret.encode(), query.encode(), hashlib.sha256).hexdigest()
        return params

    async def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None, signed: bool = False):
        params = params or {}
        headers = {}
        if signed:
            params = self._sign(params)
            headers["X-MBX-APIKEY"] = self.api_key
        resp = await self.client.request(method, path, params=params, headers=headers)
        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            raise BinanceAPIError(resp.status_code, body.get("code"), body.get("msg", resp.text))
        return resp.json()

    async def discover_assets(self) -> List[Asset]:
        info = await self._request("GET", "/fapi/v1/exchangeInfo")
        assets = [a for a in (parse_asset(raw) for raw in info.get("symbols", [])) if a is not None]
        logger.info("Discovered %d tradable symbols", len(assets))
        return assets

    async def fetch_closes(self, symbol: str, interval: str, limit: int) -> List[float]:
        """Closes of the last `limit` klines, oldest first (fewer for young symbols)."""
        klines = await self._request("GET", "/fapi/v1/klines", {"symbol": symbol, "interval": interval, "limit": limit})
        return [float(k[4]) for k in klines]

    async def fetch_balance(self) -> float:
        account = await self._request("GET", "/fapi/v2/account", signed=True)
        return float(account["totalWalletBalance"])

    async def place_market_order(self, symbol: str, side: str, quantity: float, quantity_precision: int,
                                 reduce_only: bool = False) -> Dict[str, Any]:
        params = {
            "symbol": symbol,
            "side": side,
            "type": "MARKET",
            "quantity": f"{quantity:.{quantity_precision}f}",
        }
        if reduce_only:
            params["reduceOnly"] = "true"
        order = await self._request("POST", "/fapi/v1/order", params, signed=True)
        logger.info("Created order %s %s %s qty=%s", order.get("orderId"), side, symbol, params["quantity"])
        return order

    async def close_position(self, symbol: str, quantity_precision: int) -> Optional[Dict[str, Any]]:
        """Flatten the exchange position on `symbol` with a reduce-only market order."""
        risks = await self._request("GET", "/fapi/v2/positionRisk", {"symbol": symbol}, signed=True)
        amount = sum(float(r.get("positionAmt", 0.0)) for r in risks)
        if amount == 0:
            logger.info("No exchange position to close on %s", symbol)
            return None
        side = "SELL" if amount > 0 else "BUY"
        return await self.place_market_order(symbol, side, abs(amount), quantity_precision, reduce_only=True)
