# app/utils/http_errors.py
from fastapi import HTTPException

from app.services.ledger_services.errors import (
    LedgerError, LedgerValidationError, RecordNotFound, ConcurrencyConflict,
    StoreCommitFailure, PaymentAllocatedError, InvoiceAllocatedError,
)

_STATUS_CODES = (
    (LedgerValidationError, 400),
    (RecordNotFound, 404),
    (PaymentAllocatedError, 409),
    (InvoiceAllocatedError, 409),
    (ConcurrencyConflict, 409),
    (StoreCommitFailure, 503),
)


def to_http_exception(error: LedgerError) -> HTTPException:
    for exc_type, status_code in _STATUS_CODES:
        if isinstance(error, exc_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail="Ledger operation failed")
