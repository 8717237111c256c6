"""Unified API router aggregator.

Adds all individual feature routers here to keep `app.py` clean.
"""
from fastapi import APIRouter

from hermes.api.routes.reports import router as reports_router
from hermes.api.routes.system import router as system_router
from hermes.api.routes.trading_control import router as trading_control_router

api_router = APIRouter()
api_router.include_router(system_router)
api_router.include_router(trading_control_router)
api_router.include_router(reports_router)

__all__ = ["api_router"]
