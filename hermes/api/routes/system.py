"""System & metadata routes (root, health, status, config)."""
from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from hermes.config import settings
from hermes.api.dependencies.services import ServiceRegistry, get_service_registry
from hermes.api.state.startup import session_events

router = APIRouter()

@router.get("/")
async def root(registry: ServiceRegistry = Depends(get_service_registry)):
    return {
        "name": "Hermes",
        "version": "1.0.0",
        "description": "Signal detection and position tracking for Binance USD-M futures",
        "services": registry.names(),
        "auto_start": settings.AUTO_START,
        "endpoints": {
            "health": "/health",
            "status": "/status",
            "startup_events": "/startup/log",
            "docs": "/docs",
            "control": "/control/",
            "reports": "/reports/",
            "metrics": "/metrics",
        },
    }

@router.get("/health")
async def health():
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

@router.get("/status")
async def status(registry: ServiceRegistry = Depends(get_service_registry)):
    return registry.all_status()

@router.get("/startup/log")
async def startup_log(limit: int = 100):
    return {"events": session_events.recent(limit)}

@router.get("/config")
async def get_config():
    return {
        "interval": settings.INTERVAL,
        "candle_limit": settings.CANDLE_LIMIT,
        "max_positions": settings.MAX_POSITIONS,
        "stop_loss_pct": settings.STOP_LOSS_PCT,
        "take_profit_pct": settings.TAKE_PROFIT_PCT,
        "simulate_trades": settings.SIMULATE_TRADES,
        "trade_signals": settings.TRADE_SIGNALS,
        "notify_on_signals": settings.NOTIFY_ON_SIGNALS,
        "ema": [settings.EMA_FAST, settings.EMA_SLOW, settings.EMA_TREND_SHORT, settings.EMA_TREND_LONG],
        "rsi_period": settings.RSI_PERIOD,
    }

__all__ = ["router"]
