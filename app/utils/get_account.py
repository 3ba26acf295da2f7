# app/utils/get_account.py
from fastapi import Depends, HTTPException, Header
from starlette.requests import Request

from app.core.db import get_session_factory
from app.services.ledger_services.ledger_store import LedgerStore


async def get_current_account(
    request: Request,
    x_account_id: str | None = Header(default=None),
) -> str:
    # Authentication lives in front of this service; it forwards the tenant id.
    account_id = (x_account_id or "").strip()
    if not account_id:
        raise HTTPException(status_code=401, detail="Missing account id")

    request.state.account_id = account_id
    return account_id


async def get_ledger_store(
    account_id: str = Depends(get_current_account),
    session_factory=Depends(get_session_factory),
) -> LedgerStore:
    return LedgerStore(session_factory, account_id)
