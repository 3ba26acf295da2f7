# app/schemas/ledger_schemas.py
from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from datetime import datetime
from typing_extensions import Annotated
from app.models.ledger_models import SaleStatus, PaymentMethod, ReceivedStatus

# Define reusable constrained Decimal types
PositiveDecimal = Annotated[Decimal, Field(gt=0, max_digits=14, decimal_places=2)]
CustomerName = Annotated[str, Field(min_length=1)]


class PaymentCreate(BaseModel):
    customer_name: CustomerName
    supplier_name: Optional[str] = None
    date: datetime
    amount: PositiveDecimal
    payment_method: PaymentMethod = PaymentMethod.CASH
    received_status: ReceivedStatus = ReceivedStatus.PENDING
    bank_name: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None


class PaymentUpdate(BaseModel):
    payment_method: Optional[PaymentMethod] = None
    received_status: Optional[ReceivedStatus] = None
    bank_name: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None


class PaymentConfirm(BaseModel):
    confirmed_by: CustomerName


class PaymentResponse(BaseModel):
    id: int
    customer_name: str
    supplier_name: Optional[str]
    date: datetime
    amount: Decimal
    payment_method: PaymentMethod
    received_status: ReceivedStatus
    bank_name: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    confirmed_date: Optional[datetime] = None
    confirmed_by: Optional[str] = None

    class Config:
        from_attributes = True


class SaleCreate(BaseModel):
    customer_name: CustomerName
    supplier_name: Optional[str] = None
    date: datetime
    amount: PositiveDecimal
    invoice_number: Optional[str] = None
    operation_number: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None


class LedgerRecordResponse(BaseModel):
    id: int
    kind: str
    invoice_number: str
    customer_name: str
    supplier_name: Optional[str]
    date: datetime
    amount: Decimal
    paid_amount: Decimal
    status: SaleStatus
    payment_date: Optional[datetime] = None
    payment_method: Optional[str] = None
    operation_number: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class AllocationResponse(BaseModel):
    message: str
    payment: PaymentResponse
    updated_invoices: List[LedgerRecordResponse]
    credit_entry: Optional[LedgerRecordResponse] = None


class SaleResponse(BaseModel):
    message: str
    invoice: LedgerRecordResponse
    updated_credits: List[LedgerRecordResponse]
    deleted_credit_ids: List[int]
