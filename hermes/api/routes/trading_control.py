"""Session control routes."""
import logging
from fastapi import APIRouter, Depends, HTTPException
from hermes.api.dependencies.services import get_trading_service
from hermes.api.state.startup import session_events

logger = logging.getLogger("trading_control")

router = APIRouter(prefix="/control", tags=["trading-control"])

@router.post("/start")
async def start_trading(service=Depends(get_trading_service)):
    try:
        await service.start()
    except Exception as e:
        logger.exception("Session start failed")
        session_events.record("start_error", "session_failed", error=str(e))
        raise HTTPException(status_code=502, detail=f"Failed to start session: {e}")
    session_events.record("start", "session_started", **service.status())
    return {"status": "started", "message": "Trading session started successfully", **service.status()}

@router.post("/stop")
async def stop_trading(service=Depends(get_trading_service)):
    await service.stop()
    session_events.record("stop", "session_stopped")
    return {"status": "stopped", "message": "Trading session stopped successfully", **service.status()}

__all__ = ["router"]
