import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import make_asgi_app

from hermes.config import settings
from hermes.services.trading_service import TradingService
from hermes.api.router import api_router
from hermes.api.dependencies.services import service_registry
from hermes.utils.logging_config import configure_logging
from hermes.api.state.startup import session_events

logger = logging.getLogger("app")


def _bootstrap_services():
    service = TradingService()
    service_registry.register("trading", service)
    return service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager."""
    configure_logging(settings.LOG_DIR)
    logger.info("Starting Hermes (interval=%s)...", settings.INTERVAL)

    service = _bootstrap_services()

    if settings.AUTO_START:
        try:
            await service.start()
            logger.info("AUTO_START: trading session started")
            session_events.record("auto_start", "session_started", **service.status())
        except Exception as e:
            logger.exception("AUTO_START failed")
            session_events.record("auto_start_error", "session_failed", error=str(e))
            await service.close()
            raise

    yield

    logger.info("Shutting down trading service...")
    try:
        await service.close()
        logger.info("Trading service stopped successfully")
    except Exception as e:  # pragma: no cover
        logger.error(f"Failed to stop trading service: {e}")
    finally:
        service_registry.unregister("trading")


app = FastAPI(
    title="Hermes",
    description="Signal detection and position tracking for Binance USD-M futures",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(api_router)
app.mount("/metrics", make_asgi_app())
