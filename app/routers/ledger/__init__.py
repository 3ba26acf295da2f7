from fastapi import APIRouter
from .payments_router import router as payments_router
from .sales_router import router as sales_router
from .balances_router import router as balances_router

router = APIRouter(prefix="/ledger")

router.include_router(payments_router)
router.include_router(sales_router)
router.include_router(balances_router)
