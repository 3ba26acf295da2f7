# app/routers/ledger/sales_router.py
from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from app.schemas.ledger_schemas import SaleCreate, SaleResponse, LedgerRecordResponse
from app.services.ledger_services import allocation_service, maintenance_service
from app.services.ledger_services.errors import LedgerError
from app.services.ledger_services.ledger_store import LedgerStore
from app.utils.get_account import get_ledger_store
from app.utils.http_errors import to_http_exception

router = APIRouter(prefix="/sales", tags=["Sales"])


# POST /ledger/sales
@router.post("", response_model=SaleResponse, status_code=201)
async def route_record_sale(payload: SaleCreate, store: LedgerStore = Depends(get_ledger_store)):
    data = payload.model_dump()
    try:
        result = await allocation_service.record_customer_sale(
            store,
            data.pop("customer_name"),
            data.pop("amount"),
            data.pop("date"),
            **data,
        )
    except LedgerError as e:
        raise to_http_exception(e)

    return SaleResponse(
        message="Sale recorded successfully",
        invoice=LedgerRecordResponse.model_validate(result.invoice),
        updated_credits=[LedgerRecordResponse.model_validate(c) for c in result.updated_credits],
        deleted_credit_ids=result.deleted_credit_ids,
    )


# GET /ledger/sales
@router.get("", response_model=List[LedgerRecordResponse])
async def route_get_sales(
    customer_name: Optional[str] = Query(None, description="Filter by customer"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    store: LedgerStore = Depends(get_ledger_store),
):
    """Invoices and credit entries, newest first."""
    return await store.list_invoices(customer_name, limit=limit, offset=offset)


# GET /ledger/sales/{invoice_id}
@router.get("/{invoice_id}", response_model=LedgerRecordResponse)
async def route_get_sale(invoice_id: int, store: LedgerStore = Depends(get_ledger_store)):
    try:
        return await maintenance_service.get_invoice(store, invoice_id)
    except LedgerError as e:
        raise to_http_exception(e)


# DELETE /ledger/sales/{invoice_id}
@router.delete("/{invoice_id}", response_model=LedgerRecordResponse)
async def route_delete_sale(invoice_id: int, store: LedgerStore = Depends(get_ledger_store)):
    try:
        return await maintenance_service.delete_customer_sale(store, invoice_id)
    except LedgerError as e:
        raise to_http_exception(e)
