# app/routers/ledger/balances_router.py
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from typing import Optional

from app.schemas.balance_schemas import (
    CustomerBalanceSummaryOut, LedgerResponse, LedgerRowOut,
    CustomerBalanceListResponse, CustomerBalanceRowOut, PairSummaryListResponse,
)
from app.services.ledger_services import balance_service
from app.services.ledger_services.balance_service import LedgerView
from app.services.ledger_services.ledger_store import LedgerStore
from app.utils.get_account import get_ledger_store
from app.utils.names import normalize_name

router = APIRouter(tags=["Balances"])


# GET /ledger/customers/{customer_name}/summary
@router.get("/customers/{customer_name}/summary", response_model=CustomerBalanceSummaryOut)
async def route_customer_summary(
    customer_name: str,
    supplier_name: Optional[str] = Query(None, description="Restrict to one supplier"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    store: LedgerStore = Depends(get_ledger_store),
):
    summary = await balance_service.compute_summary(store, customer_name, supplier_name, date_from, date_to)
    return CustomerBalanceSummaryOut.model_validate(summary)


# GET /ledger/customers/{customer_name}/ledger
@router.get("/customers/{customer_name}/ledger", response_model=LedgerResponse)
async def route_customer_ledger(
    customer_name: str,
    supplier_name: Optional[str] = Query(None, description="Restrict to one supplier"),
    view: LedgerView = Query(LedgerView.INVOICES, description="invoices or operations"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    store: LedgerStore = Depends(get_ledger_store),
):
    rows = await balance_service.compute_ledger(store, customer_name, supplier_name, view, date_from, date_to)
    return LedgerResponse(
        customer_name=normalize_name(customer_name),
        supplier_name=normalize_name(supplier_name) or None,
        view=view.value,
        rows=[LedgerRowOut.model_validate(r) for r in rows],
    )


# GET /ledger/balances
@router.get("/balances", response_model=CustomerBalanceListResponse)
async def route_customer_balances(
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    store: LedgerStore = Depends(get_ledger_store),
):
    rows = await balance_service.compute_customer_balances(store, date_from, date_to)
    return CustomerBalanceListResponse(
        message="Customer balances computed successfully",
        total=len(rows),
        data=[CustomerBalanceRowOut.model_validate(r) for r in rows],
    )


# GET /ledger/pairs
@router.get("/pairs", response_model=PairSummaryListResponse)
async def route_pair_summaries(store: LedgerStore = Depends(get_ledger_store)):
    summaries = await balance_service.compute_pair_summaries(store)
    return PairSummaryListResponse(
        message="Customer/supplier summaries computed successfully",
        total=len(summaries),
        data=[CustomerBalanceSummaryOut.model_validate(s) for s in summaries],
    )
