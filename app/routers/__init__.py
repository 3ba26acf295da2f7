# app/routers/__init__.py

from .activity_router import router as activity_router
from .ledger import router as ledger_router

__all__ = [
    "activity_router",
    "ledger_router",
]
