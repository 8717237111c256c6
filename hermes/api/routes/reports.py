"""Read-only account and position reports (the reporting channel's commands)."""
from typing import List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from hermes.api.dependencies.services import get_trading_service

router = APIRouter(prefix="/reports", tags=["reports"])

class AccountSummary(BaseModel):
    initial_balance: float
    total_balance: float
    allocated_balance: float
    available_balance: float
    net_pnl: float
    pnl: float
    wins: int
    losses: int
    open_positions: int
    closed_positions: int

class PNLReport(BaseModel):
    net_pnl: float
    pnl: float

class PositionReport(BaseModel):
    id: int
    symbol: str
    side: str
    entry_price: float
    entry_signal: str
    size: float
    quantity: float
    sl: float
    tp: float
    exit_price: Optional[float] = None
    exit_signal: Optional[str] = None
    net_pnl: float
    pnl: float
    price: Optional[float] = None
    unrealized_net_pnl: Optional[float] = None
    unrealized_pnl: Optional[float] = None

@router.get("/account", response_model=AccountSummary)
async def account_summary(service=Depends(get_trading_service)):
    return await service.account_summary()

@router.get("/pnl", response_model=PNLReport)
async def net_pnl(service=Depends(get_trading_service)):
    return await service.net_pnl()

@router.get("/unrealized", response_model=PNLReport)
async def unrealized_pnl(service=Depends(get_trading_service)):
    return await service.unrealized_pnl()

@router.get("/positions", response_model=List[PositionReport])
async def open_positions(service=Depends(get_trading_service)):
    return await service.open_positions()

@router.get("/positions/closed", response_model=List[PositionReport])
async def closed_positions(service=Depends(get_trading_service)):
    return await service.closed_positions()

__all__ = ["router"]
