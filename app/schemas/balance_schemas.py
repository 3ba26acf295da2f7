# app/schemas/balance_schemas.py
from pydantic import BaseModel
from decimal import Decimal
from typing import Optional, List
from datetime import datetime
from app.services.ledger_services.balance_service import EventType


class CustomerBalanceSummaryOut(BaseModel):
    customer_name: str
    supplier_name: Optional[str] = None
    total_sales: Decimal
    total_paid: Decimal
    balance: Decimal
    balance_type: str
    outstanding_due: Decimal
    credit_available: Decimal
    invoice_count: int
    payment_count: int
    first_date: Optional[datetime] = None
    last_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class LedgerRowOut(BaseModel):
    id: str
    date: datetime
    transaction_type: EventType
    description: str
    sale_amount: Decimal
    payment_amount: Decimal
    supplier_amount: Decimal
    cumulative_total_sales: Decimal
    cumulative_total_paid: Decimal
    cumulative_supplier: Decimal
    running_balance: Decimal
    balance_type: str

    class Config:
        from_attributes = True


class LedgerResponse(BaseModel):
    customer_name: str
    supplier_name: Optional[str] = None
    view: str
    rows: List[LedgerRowOut]


class CustomerBalanceRowOut(BaseModel):
    customer_name: str
    total_sales: Decimal
    total_received: Decimal
    received_from_supplier: Decimal
    diff: Decimal

    class Config:
        from_attributes = True


class CustomerBalanceListResponse(BaseModel):
    message: str
    total: int
    data: List[CustomerBalanceRowOut]


class PairSummaryListResponse(BaseModel):
    message: str
    total: int
    data: List[CustomerBalanceSummaryOut]
