import logging

from hermes.execution.positions import Position
from hermes.models.market_models import Asset
from hermes.services.metrics import order_failures_counter, orders_counter

logger = logging.getLogger("executor")


class Executor:
    """Submits real exchange orders for positions opened by the ledger.

    Order failures are logged and reported as False; they never propagate to
    the candle dispatch path.
    """
    def __init__(self, broker_rest):
        self.broker = broker_rest

    async def open_order(self, position: Position, asset: Asset) -> bool:
        logger.debug("Placing market order %s %s qty=%s", position.side.value, position.symbol, position.quantity)
        try:
            await self.broker.place_market_order(position.symbol, position.side.value, position.quantity, asset.quantity_precision)
            orders_counter.inc()
            return True
        except Exception:
            order_failures_counter.inc()
            logger.exception("Order failed for %s", position.symbol)
            return False

    async def close_order(self, symbol: str, asset: Asset) -> bool:
        try:
            await self.broker.close_position(symbol, asset.quantity_precision)
            orders_counter.inc()
            return True
        except Exception:
            order_failures_counter.inc()
            logger.exception("Failed closing exchange position %s", symbol)
            return False
