# app/routers/ledger/payments_router.py
from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from app.schemas.ledger_schemas import (
    PaymentCreate, PaymentUpdate, PaymentConfirm, PaymentResponse, AllocationResponse, LedgerRecordResponse
)
from app.services.ledger_services import allocation_service, maintenance_service
from app.services.ledger_services.errors import LedgerError
from app.services.ledger_services.ledger_store import LedgerStore
from app.utils.get_account import get_ledger_store
from app.utils.http_errors import to_http_exception

router = APIRouter(prefix="/payments", tags=["Payments"])


# POST /ledger/payments
@router.post("", response_model=AllocationResponse, status_code=201)
async def route_apply_payment(payload: PaymentCreate, store: LedgerStore = Depends(get_ledger_store)):
    data = payload.model_dump()
    try:
        result = await allocation_service.apply_customer_payment(
            store,
            data.pop("customer_name"),
            data.pop("amount"),
            data.pop("date"),
            **data,
        )
    except LedgerError as e:
        raise to_http_exception(e)

    return AllocationResponse(
        message="Payment recorded and allocated successfully",
        payment=PaymentResponse.model_validate(result.payment),
        updated_invoices=[LedgerRecordResponse.model_validate(i) for i in result.updated_invoices],
        credit_entry=LedgerRecordResponse.model_validate(result.credit_entry) if result.credit_entry else None,
    )


# GET /ledger/payments
@router.get("", response_model=List[PaymentResponse])
async def route_get_payments(
    customer_name: Optional[str] = Query(None, description="Filter by customer"),
    supplier_name: Optional[str] = Query(None, description="Filter by supplier"),
    store: LedgerStore = Depends(get_ledger_store),
):
    return await store.read_payments(customer_name, supplier_name)


# GET /ledger/payments/{payment_id}
@router.get("/{payment_id}", response_model=PaymentResponse)
async def route_get_payment(payment_id: int, store: LedgerStore = Depends(get_ledger_store)):
    try:
        return await maintenance_service.get_payment(store, payment_id)
    except LedgerError as e:
        raise to_http_exception(e)


# POST /ledger/payments/{payment_id}/confirm
@router.post("/{payment_id}/confirm", response_model=PaymentResponse)
async def route_confirm_payment(payment_id: int, payload: PaymentConfirm, store: LedgerStore = Depends(get_ledger_store)):
    try:
        return await maintenance_service.confirm_customer_payment(store, payment_id, payload.confirmed_by)
    except LedgerError as e:
        raise to_http_exception(e)


# PATCH /ledger/payments/{payment_id}
@router.patch("/{payment_id}", response_model=PaymentResponse)
async def route_update_payment(payment_id: int, payload: PaymentUpdate, store: LedgerStore = Depends(get_ledger_store)):
    try:
        return await maintenance_service.update_payment_metadata(
            store, payment_id, payload.model_dump(exclude_unset=True)
        )
    except LedgerError as e:
        raise to_http_exception(e)


# DELETE /ledger/payments/{payment_id}
@router.delete("/{payment_id}", response_model=PaymentResponse)
async def route_delete_payment(payment_id: int, store: LedgerStore = Depends(get_ledger_store)):
    try:
        return await maintenance_service.delete_customer_payment(store, payment_id)
    except LedgerError as e:
        raise to_http_exception(e)
