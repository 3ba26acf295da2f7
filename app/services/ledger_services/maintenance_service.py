# app/services/ledger_services/maintenance_service.py
import datetime
import logging
from typing import Any, Dict, Optional

from app.models.ledger_models import Payment, SaleInvoice, RecordKind, ReceivedStatus
from app.services.ledger_services.errors import (
    RecordNotFound, PaymentAllocatedError, InvoiceAllocatedError, LedgerValidationError
)
from app.services.ledger_services.ledger_store import LedgerStore, UpdateRecord, DeleteRecord
from app.utils.customer_locks import CustomerLockRegistry, customer_locks
from app.utils.decimal_utils import to_decimal, ZERO

logger = logging.getLogger(__name__)

# amount, customer and date are fixed once a payment has been allocated
EDITABLE_PAYMENT_FIELDS = {"payment_method", "received_status", "bank_name", "reference_number", "notes"}
REQUIRED_PAYMENT_FIELDS = {"payment_method", "received_status"}


async def _get_payment_or_404(store: LedgerStore, payment_id: int) -> Payment:
    payment = await store.get_payment(payment_id)
    if payment is None:
        raise RecordNotFound("Payment not found")
    return payment


async def confirm_customer_payment(store: LedgerStore, payment_id: int, confirmed_by: str) -> Payment:
    payment = await _get_payment_or_404(store, payment_id)
    if not (confirmed_by or "").strip():
        raise LedgerValidationError("confirmed_by is required")

    values = {
        "received_status": ReceivedStatus.RECEIVED,
        "confirmed_date": datetime.datetime.now(datetime.timezone.utc),
        "confirmed_by": confirmed_by.strip(),
    }
    await store.commit_batch(
        [UpdateRecord(payment.id, payment.version, values, model=Payment)],
        activity_message=f"Payment {payment.id} confirmed by '{confirmed_by.strip()}'",
    )
    return await _get_payment_or_404(store, payment_id)


async def update_payment_metadata(store: LedgerStore, payment_id: int, data: Dict[str, Any]) -> Payment:
    payment = await _get_payment_or_404(store, payment_id)

    blocked = set(data) - EDITABLE_PAYMENT_FIELDS
    if blocked:
        raise LedgerValidationError(f"Fields cannot be changed after allocation: {', '.join(sorted(blocked))}")
    cleared = sorted(k for k in REQUIRED_PAYMENT_FIELDS if k in data and data[k] is None)
    if cleared:
        raise LedgerValidationError(f"Fields cannot be empty: {', '.join(cleared)}")
    if not data:
        return payment

    await store.commit_batch(
        [UpdateRecord(payment.id, payment.version, dict(data), model=Payment)],
        activity_message=f"Payment {payment.id} updated ({', '.join(sorted(data))})",
    )
    return await _get_payment_or_404(store, payment_id)


async def delete_customer_payment(
    store: LedgerStore,
    payment_id: int,
    locks: CustomerLockRegistry = customer_locks,
) -> Payment:
    """
    Allocated money cannot be taken back silently. A payment may only be
    deleted while its whole amount still sits, untouched, in the credit entry
    it created; that credit is removed in the same batch.
    """
    payment = await _get_payment_or_404(store, payment_id)

    async with locks.get(store.account_id, payment.customer_name):
        credit = await store.get_credit_for_payment(payment.id)
        untouched = (
            credit is not None
            and to_decimal(credit.paid_amount) == ZERO
            and to_decimal(credit.amount) == to_decimal(payment.amount)
        )
        if not untouched:
            raise PaymentAllocatedError(
                "Payment has already been applied to invoices or its credit was consumed"
            )

        await store.commit_batch(
            [
                DeleteRecord(credit.id, expected_version=credit.version),
                DeleteRecord(payment.id, expected_version=payment.version, model=Payment),
            ],
            activity_message=f"Payment {payment.id} of {payment.amount} deleted for '{payment.customer_name}'",
        )

    logger.info("Deleted payment %s and its credit entry %s", payment.id, credit.id)
    return payment


async def delete_customer_sale(
    store: LedgerStore,
    invoice_id: int,
    locks: CustomerLockRegistry = customer_locks,
) -> SaleInvoice:
    record = await store.get_record(invoice_id)
    if record is None or record.kind != RecordKind.INVOICE.value:
        raise RecordNotFound("Invoice not found")

    async with locks.get(store.account_id, record.customer_name):
        if to_decimal(record.paid_amount) > ZERO:
            raise InvoiceAllocatedError("Invoice has payments or credit applied and cannot be deleted")

        await store.commit_batch(
            [DeleteRecord(record.id, expected_version=record.version)],
            activity_message=f"Sale '{record.invoice_number}' deleted for '{record.customer_name}'",
        )

    logger.info("Deleted invoice %s for '%s'", record.invoice_number, record.customer_name)
    return record


async def get_payment(store: LedgerStore, payment_id: int) -> Payment:
    return await _get_payment_or_404(store, payment_id)


async def get_invoice(store: LedgerStore, invoice_id: int):
    record = await store.get_record(invoice_id)
    if record is None:
        raise RecordNotFound("Invoice not found")
    return record
