# app/services/ledger_services/allocation_service.py
import datetime
import logging
import random
import string
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from app.core.config import ALLOCATION_MAX_ATTEMPTS
from app.models.ledger_models import (
    SaleInvoice, CreditEntry, Payment, SaleStatus, PaymentMethod, ReceivedStatus, OPEN_STATUSES
)
from app.services.ledger_services.errors import ConcurrencyConflict, LedgerValidationError
from app.services.ledger_services.ledger_store import LedgerStore, CreateRecord, UpdateRecord, DeleteRecord
from app.utils.customer_locks import CustomerLockRegistry, customer_locks
from app.utils.decimal_utils import to_decimal, compute_balance, ZERO
from app.utils.names import normalize_name

logger = logging.getLogger(__name__)


# --------------------------
# Results and plans
# --------------------------
@dataclass
class InvoiceAllocation:
    invoice: SaleInvoice
    applied: Decimal
    paid_amount: Decimal
    status: SaleStatus


@dataclass
class PaymentPlan:
    allocations: List[InvoiceAllocation] = field(default_factory=list)
    remaining: Decimal = ZERO


@dataclass
class CreditConsumption:
    credit: CreditEntry
    applied: Decimal
    paid_amount: Decimal

    @property
    def exhausted(self) -> bool:
        return self.paid_amount >= to_decimal(self.credit.amount)


@dataclass
class CreditPlan:
    consumptions: List[CreditConsumption] = field(default_factory=list)
    to_pay: Decimal = ZERO


@dataclass
class AllocationResult:
    payment: Payment
    updated_invoices: List[SaleInvoice]
    credit_entry: Optional[CreditEntry] = None


@dataclass
class SaleResult:
    invoice: SaleInvoice
    updated_credits: List[CreditEntry]
    deleted_credit_ids: List[int]


# --------------------------
# Helpers
# --------------------------
def resolve_status(amount, paid_amount) -> SaleStatus:
    amount = to_decimal(amount)
    paid_amount = to_decimal(paid_amount)
    if paid_amount >= amount:
        return SaleStatus.PAID
    if paid_amount > ZERO:
        return SaleStatus.PARTIALLY_PAID
    return SaleStatus.PENDING


def _generate_number(prefix: str) -> str:
    ts = datetime.datetime.now(datetime.timezone.utc).strftime("%Y%m%d%H%M%S%f")
    suffix = ''.join(random.choices(string.digits, k=4))
    return f"{prefix}-{ts}-{suffix}"


def validate_entry(customer_name, amount, date) -> Tuple[str, Decimal, datetime.datetime]:
    name = normalize_name(customer_name) if isinstance(customer_name, str) else ""
    if not name:
        raise LedgerValidationError("Customer name is required")

    if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal, str)):
        raise LedgerValidationError("Amount must be a number")
    value = to_decimal(amount)
    if value <= ZERO:
        raise LedgerValidationError("Amount must be greater than zero")

    if isinstance(date, datetime.datetime):
        when = date
    elif isinstance(date, datetime.date):
        when = datetime.datetime.combine(date, datetime.time.min)
    else:
        raise LedgerValidationError("Date must be a date or datetime")
    return name, value, when


# --------------------------
# Pure planning
# --------------------------
def plan_payment_allocation(invoices: Sequence[SaleInvoice], amount) -> PaymentPlan:
    """
    Oldest-first: pay each open invoice's due amount in (date, id) order until
    the payment runs out. Whatever is left over is returned as `remaining`.
    """
    plan = PaymentPlan(remaining=to_decimal(amount))
    open_invoices = sorted(
        (inv for inv in invoices if inv.status in OPEN_STATUSES),
        key=lambda inv: (inv.date, inv.id),
    )
    for inv in open_invoices:
        if plan.remaining <= ZERO:
            break
        due = compute_balance(inv.amount, inv.paid_amount)
        applied = min(plan.remaining, due)
        if applied <= ZERO:
            continue
        paid_amount = to_decimal(to_decimal(inv.paid_amount) + applied)
        plan.allocations.append(InvoiceAllocation(
            invoice=inv,
            applied=applied,
            paid_amount=paid_amount,
            status=resolve_status(inv.amount, paid_amount),
        ))
        plan.remaining = to_decimal(plan.remaining - applied)
    return plan


def plan_credit_consumption(credits: Sequence[CreditEntry], amount) -> CreditPlan:
    """Consume carried credit oldest-first against a new invoice of `amount`."""
    plan = CreditPlan(to_pay=to_decimal(amount))
    for credit in sorted(credits, key=lambda c: (c.date, c.id)):
        if plan.to_pay <= ZERO:
            break
        available = compute_balance(credit.amount, credit.paid_amount)
        applied = min(plan.to_pay, available)
        if applied <= ZERO:
            continue
        plan.consumptions.append(CreditConsumption(
            credit=credit,
            applied=applied,
            paid_amount=to_decimal(to_decimal(credit.paid_amount) + applied),
        ))
        plan.to_pay = to_decimal(plan.to_pay - applied)
    return plan


# --------------------------
# APPLY CUSTOMER PAYMENT
# --------------------------
async def apply_customer_payment(
    store: LedgerStore,
    customer_name: str,
    amount,
    date,
    *,
    supplier_name: Optional[str] = None,
    payment_method: PaymentMethod = PaymentMethod.CASH,
    received_status: ReceivedStatus = ReceivedStatus.PENDING,
    bank_name: Optional[str] = None,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
    locks: CustomerLockRegistry = customer_locks,
) -> AllocationResult:
    customer_name, amount, date = validate_entry(customer_name, amount, date)
    supplier_name = normalize_name(supplier_name) or None

    payment_values = dict(
        customer_name=customer_name,
        supplier_name=supplier_name,
        date=date,
        amount=amount,
        payment_method=payment_method,
        received_status=received_status,
        bank_name=bank_name,
        reference_number=reference_number,
        notes=notes,
    )

    async with locks.get(store.account_id, customer_name):
        for attempt in range(ALLOCATION_MAX_ATTEMPTS):
            invoices = await store.read_invoices(customer_name, OPEN_STATUSES)
            plan = plan_payment_allocation(invoices, amount)

            mutations = [CreateRecord(Payment, payment_values, ref="payment")]
            for alloc in plan.allocations:
                mutations.append(UpdateRecord(
                    record_id=alloc.invoice.id,
                    expected_version=alloc.invoice.version,
                    values={"paid_amount": alloc.paid_amount, "status": alloc.status, "payment_date": date},
                ))
            if plan.remaining > ZERO:
                mutations.append(CreateRecord(
                    CreditEntry,
                    dict(
                        invoice_number=_generate_number("CREDIT"),
                        customer_name=customer_name,
                        supplier_name=supplier_name,
                        date=date,
                        amount=plan.remaining,
                        paid_amount=ZERO,
                        status=SaleStatus.CREDIT_BALANCE,
                        description=f"Credit balance from payment dated {date:%Y-%m-%d}",
                    ),
                    ref="credit",
                    links={"source_payment_id": "payment"},
                ))

            try:
                created = await store.commit_batch(
                    mutations,
                    activity_message=f"Payment of {amount} received from '{customer_name}'",
                )
            except ConcurrencyConflict:
                logger.warning(
                    "Allocation conflict for customer '%s' (attempt %s/%s); re-reading invoices",
                    customer_name, attempt + 1, ALLOCATION_MAX_ATTEMPTS,
                )
                continue

            updated = []
            for alloc in plan.allocations:
                inv = alloc.invoice
                inv.paid_amount = alloc.paid_amount
                inv.status = alloc.status
                inv.payment_date = date
                inv.version = inv.version + 1
                updated.append(inv)

            credit = created.get("credit")
            logger.info(
                "Payment %s of %s for '%s' applied to %s invoice(s); credit carried: %s",
                created["payment"].id, amount, customer_name, len(updated),
                plan.remaining if credit is not None else ZERO,
            )
            return AllocationResult(payment=created["payment"], updated_invoices=updated, credit_entry=credit)

    raise ConcurrencyConflict(
        f"Invoices for '{customer_name}' kept changing; gave up after {ALLOCATION_MAX_ATTEMPTS} attempts"
    )


# --------------------------
# RECORD CUSTOMER SALE
# --------------------------
async def record_customer_sale(
    store: LedgerStore,
    customer_name: str,
    amount,
    date,
    *,
    supplier_name: Optional[str] = None,
    invoice_number: Optional[str] = None,
    operation_number: Optional[str] = None,
    description: Optional[str] = None,
    notes: Optional[str] = None,
    locks: CustomerLockRegistry = customer_locks,
) -> SaleResult:
    customer_name, amount, date = validate_entry(customer_name, amount, date)
    supplier_name = normalize_name(supplier_name) or None
    invoice_number = invoice_number or _generate_number("INV")

    async with locks.get(store.account_id, customer_name):
        for attempt in range(ALLOCATION_MAX_ATTEMPTS):
            credits = await store.read_credits(customer_name)
            plan = plan_credit_consumption(credits, amount)

            mutations = []
            for c in plan.consumptions:
                if c.exhausted:
                    mutations.append(DeleteRecord(c.credit.id, expected_version=c.credit.version))
                else:
                    mutations.append(UpdateRecord(
                        record_id=c.credit.id,
                        expected_version=c.credit.version,
                        values={"paid_amount": c.paid_amount},
                    ))

            paid_amount = to_decimal(amount - plan.to_pay)
            mutations.append(CreateRecord(
                SaleInvoice,
                dict(
                    invoice_number=invoice_number,
                    customer_name=customer_name,
                    supplier_name=supplier_name,
                    date=date,
                    amount=amount,
                    paid_amount=paid_amount,
                    status=resolve_status(amount, paid_amount),
                    payment_date=date if paid_amount > ZERO else None,
                    payment_method=PaymentMethod.CREDIT_DEDUCTION.value if paid_amount > ZERO else None,
                    operation_number=operation_number,
                    description=description,
                    notes=notes,
                ),
                ref="invoice",
            ))

            try:
                created = await store.commit_batch(
                    mutations,
                    activity_message=f"Sale '{invoice_number}' of {amount} recorded for '{customer_name}'",
                )
            except ConcurrencyConflict:
                logger.warning(
                    "Credit conflict for customer '%s' (attempt %s/%s); re-reading credits",
                    customer_name, attempt + 1, ALLOCATION_MAX_ATTEMPTS,
                )
                continue

            updated, deleted = [], []
            for c in plan.consumptions:
                if c.exhausted:
                    deleted.append(c.credit.id)
                else:
                    c.credit.paid_amount = c.paid_amount
                    c.credit.version = c.credit.version + 1
                    updated.append(c.credit)

            invoice = created["invoice"]
            logger.info(
                "Sale %s of %s for '%s' recorded; %s covered by credit",
                invoice.invoice_number, amount, customer_name, paid_amount,
            )
            return SaleResult(invoice=invoice, updated_credits=updated, deleted_credit_ids=deleted)

    raise ConcurrencyConflict(
        f"Credits for '{customer_name}' kept changing; gave up after {ALLOCATION_MAX_ATTEMPTS} attempts"
    )
