# app/services/ledger_services/balance_service.py
"""
Balance aggregation over a customer's ledger.

Everything here is recomputed from the store on each call; nothing is cached
and nothing is written. Two axes exist:

* customer-only summaries add up sale invoices and standalone payments;
* customer/supplier summaries and ledgers walk a single chronological event
  stream and snapshot the running balance after each event.
"""
import datetime
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from app.models.ledger_models import SaleInvoice, CreditEntry, Payment
from app.models.transaction_models import Transaction
from app.services.ledger_services.ledger_store import LedgerStore
from app.utils.date_utils import in_range
from app.utils.decimal_utils import to_decimal, balance_type, ZERO
from app.utils.names import normalize_name

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    SALE = "sale"
    PAYMENT = "payment"
    SUPPLIER = "supplier"


class LedgerView(str, Enum):
    INVOICES = "invoices"
    OPERATIONS = "operations"


# sales sort ahead of money movements that share their date
_TIE_RANK = {EventType.SALE: 0, EventType.PAYMENT: 1, EventType.SUPPLIER: 1}


@dataclass(frozen=True)
class LedgerEvent:
    id: str
    customer_name: str
    date: datetime.datetime
    type: EventType
    amount: Decimal
    description: str = ""


@dataclass(frozen=True)
class LedgerRow:
    id: str
    date: datetime.datetime
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


@dataclass
class CustomerBalanceSummary:
    customer_name: str
    supplier_name: Optional[str]
    total_sales: Decimal = ZERO
    total_paid: Decimal = ZERO
    balance: Decimal = ZERO
    balance_type: str = "balanced"
    outstanding_due: Decimal = ZERO
    credit_available: Decimal = ZERO
    invoice_count: int = 0
    payment_count: int = 0
    first_date: Optional[datetime.datetime] = None
    last_date: Optional[datetime.datetime] = None


@dataclass
class CustomerBalanceRow:
    customer_name: str
    total_sales: Decimal = ZERO
    total_received: Decimal = ZERO
    received_from_supplier: Decimal = ZERO
    diff: Decimal = ZERO


@dataclass
class _Totals:
    sales: Decimal = ZERO
    payments: Decimal = ZERO
    supplier: Decimal = ZERO

    def add(self, event: LedgerEvent):
        if event.type == EventType.SALE:
            self.sales = to_decimal(self.sales + event.amount)
        elif event.type == EventType.PAYMENT:
            self.payments = to_decimal(self.payments + event.amount)
        else:
            self.supplier = to_decimal(self.supplier + event.amount)

    @property
    def balance(self) -> Decimal:
        return to_decimal(self.payments - self.sales - self.supplier)


# --------------------------
# Pure helpers
# --------------------------
def sort_events(events: Iterable[LedgerEvent]) -> List[LedgerEvent]:
    # sorted() is stable: equal (date, rank) keep collection order
    return sorted(events, key=lambda e: (e.date, _TIE_RANK[e.type]))


def walk_events(events: Iterable[LedgerEvent]) -> List[LedgerRow]:
    """Running-balance walk; each row reflects the balance after its own event."""
    totals = _Totals()
    rows = []
    for e in sort_events(events):
        totals.add(e)
        running = totals.balance
        rows.append(LedgerRow(
            id=e.id,
            date=e.date,
            transaction_type=e.type,
            description=e.description,
            sale_amount=e.amount if e.type == EventType.SALE else ZERO,
            payment_amount=e.amount if e.type == EventType.PAYMENT else ZERO,
            supplier_amount=e.amount if e.type == EventType.SUPPLIER else ZERO,
            cumulative_total_sales=totals.sales,
            cumulative_total_paid=totals.payments,
            cumulative_supplier=totals.supplier,
            running_balance=running,
            balance_type=balance_type(running),
        ))
    return rows


def invoice_events(invoices: Iterable[SaleInvoice], payments: Iterable[Payment]) -> List[LedgerEvent]:
    events = []
    for inv in invoices:
        events.append(LedgerEvent(
            id=f"sale-{inv.id}",
            customer_name=inv.customer_name,
            date=inv.date,
            type=EventType.SALE,
            amount=to_decimal(inv.amount),
            description=inv.description or f"Invoice {inv.invoice_number}",
        ))
    for p in payments:
        events.append(LedgerEvent(
            id=f"payment-{p.id}",
            customer_name=p.customer_name,
            date=p.date,
            type=EventType.PAYMENT,
            amount=to_decimal(p.amount),
            description=p.notes or "Customer payment",
        ))
    return events


def operation_events(
    transactions: Iterable[Transaction],
    payments: Iterable[Payment],
    customer_name: Optional[str] = None,
    date_from=None,
    date_to=None,
) -> List[LedgerEvent]:
    """
    Events from the operations log: each sale, every payment embedded in it,
    standalone payments, and money the supplier handed to the customer
    (attributed through `received_by`).
    """
    target = normalize_name(customer_name) if customer_name else None
    transactions = list(transactions)
    events = []

    for t in transactions:
        name = normalize_name(t.customer_name)
        if not name or (target and name != target):
            continue
        ref = t.operation_number or t.id
        if in_range(t.date, date_from, date_to):
            events.append(LedgerEvent(
                id=f"sale-{t.id}",
                customer_name=name,
                date=t.date,
                type=EventType.SALE,
                amount=to_decimal(t.total_selling_price),
                description=f"Sale {ref}",
            ))
        for idx, cp in enumerate(t.customer_payments or []):
            amount = to_decimal(cp.amount)
            if not amount:
                continue
            when = cp.date or t.date
            if not in_range(when, date_from, date_to):
                continue
            events.append(LedgerEvent(
                id=f"intpay-{t.id}-{idx}",
                customer_name=name,
                date=when,
                type=EventType.PAYMENT,
                amount=amount,
                description=f"Embedded payment{' (applied)' if cp.applied else ''} from operation {ref}",
            ))

    for p in payments:
        name = normalize_name(p.customer_name)
        if not name or (target and name != target):
            continue
        if not in_range(p.date, date_from, date_to):
            continue
        events.append(LedgerEvent(
            id=f"payment-{p.id}",
            customer_name=name,
            date=p.date,
            type=EventType.PAYMENT,
            amount=to_decimal(p.amount),
            description=p.notes or "Customer payment",
        ))

    for t in transactions:
        amount = to_decimal(t.amount_received_from_supplier)
        name = normalize_name(t.received_by)
        if amount <= ZERO or not name or (target and name != target):
            continue
        if not in_range(t.date, date_from, date_to):
            continue
        events.append(LedgerEvent(
            id=f"supplier-{t.id}",
            customer_name=name,
            date=t.date,
            type=EventType.SUPPLIER,
            amount=amount,
            description="Received from supplier",
        ))

    return events


def summarize(
    customer_name: str,
    supplier_name: Optional[str],
    invoices: List[SaleInvoice],
    payments: List[Payment],
    credits: List[CreditEntry],
) -> CustomerBalanceSummary:
    summary = CustomerBalanceSummary(customer_name=customer_name, supplier_name=supplier_name)
    summary.invoice_count = len(invoices)
    summary.payment_count = len(payments)

    if supplier_name is None:
        summary.total_sales = to_decimal(sum((to_decimal(i.amount) for i in invoices), ZERO))
        summary.total_paid = to_decimal(sum((to_decimal(p.amount) for p in payments), ZERO))
    else:
        rows = walk_events(invoice_events(invoices, payments))
        if rows:
            summary.total_sales = rows[-1].cumulative_total_sales
            summary.total_paid = rows[-1].cumulative_total_paid

    summary.balance = to_decimal(summary.total_paid - summary.total_sales)
    summary.balance_type = balance_type(summary.balance)
    summary.outstanding_due = to_decimal(sum(
        (to_decimal(i.amount) - to_decimal(i.paid_amount) for i in invoices), ZERO
    ))
    summary.credit_available = to_decimal(sum(
        (to_decimal(c.amount) - to_decimal(c.paid_amount) for c in credits), ZERO
    ))

    dates = [i.date for i in invoices] + [p.date for p in payments]
    if dates:
        summary.first_date = min(dates)
        summary.last_date = max(dates)
    return summary


def _filter_dates(records, date_from, date_to):
    return [r for r in records if in_range(r.date, date_from, date_to)]


def _filter_supplier(records, supplier_name):
    if supplier_name is None:
        return list(records)
    return [r for r in records if normalize_name(r.supplier_name) == supplier_name]


# --------------------------
# Store-backed operations
# --------------------------
async def compute_summary(
    store: LedgerStore,
    customer_name: str,
    supplier_name: Optional[str] = None,
    date_from: Optional[datetime.datetime] = None,
    date_to: Optional[datetime.datetime] = None,
) -> CustomerBalanceSummary:
    customer_name = normalize_name(customer_name)
    supplier_name = normalize_name(supplier_name) or None

    invoices = _filter_dates(_filter_supplier(await store.read_invoices(customer_name), supplier_name), date_from, date_to)
    payments = _filter_dates(await store.read_payments(customer_name, supplier_name), date_from, date_to)
    credits = _filter_dates(_filter_supplier(await store.read_credits(customer_name), supplier_name), date_from, date_to)

    return summarize(customer_name, supplier_name, invoices, payments, credits)


async def compute_ledger(
    store: LedgerStore,
    customer_name: str,
    supplier_name: Optional[str] = None,
    view: LedgerView = LedgerView.INVOICES,
    date_from: Optional[datetime.datetime] = None,
    date_to: Optional[datetime.datetime] = None,
) -> List[LedgerRow]:
    customer_name = normalize_name(customer_name)
    supplier_name = normalize_name(supplier_name) or None

    if LedgerView(view) == LedgerView.OPERATIONS:
        transactions = await store.read_transactions()
        if supplier_name is not None:
            transactions = [t for t in transactions if normalize_name(t.supplier_name) == supplier_name]
        payments = await store.read_payments(customer_name, supplier_name)
        events = operation_events(transactions, payments, customer_name, date_from, date_to)
    else:
        invoices = _filter_dates(_filter_supplier(await store.read_invoices(customer_name), supplier_name), date_from, date_to)
        payments = _filter_dates(await store.read_payments(customer_name, supplier_name), date_from, date_to)
        events = invoice_events(invoices, payments)

    rows = walk_events(events)
    logger.debug("Ledger for '%s' (%s view): %s rows", customer_name, LedgerView(view).value, len(rows))
    return rows


async def compute_pair_summaries(store: LedgerStore) -> List[CustomerBalanceSummary]:
    """One summary per customer/supplier pair seen in invoices or payments."""
    invoices = await store.read_all_invoices()
    payments = await store.read_payments()

    pairs: Dict[Tuple[str, str], Tuple[list, list]] = {}
    for inv in invoices:
        key = (normalize_name(inv.customer_name), normalize_name(inv.supplier_name))
        pairs.setdefault(key, ([], []))[0].append(inv)
    for p in payments:
        key = (normalize_name(p.customer_name), normalize_name(p.supplier_name))
        pairs.setdefault(key, ([], []))[1].append(p)

    return [
        summarize(customer, supplier, pair_invoices, pair_payments, [])
        for (customer, supplier), (pair_invoices, pair_payments) in sorted(pairs.items())
    ]


async def compute_customer_balances(
    store: LedgerStore,
    date_from: Optional[datetime.datetime] = None,
    date_to: Optional[datetime.datetime] = None,
) -> List[CustomerBalanceRow]:
    """
    Per-customer balance table from the operations log:
    diff = received from customer - sales - received from supplier.

    Received is each operation's `amount_received_from_customer` plus
    standalone payments. Embedded operation payments are not added again.
    """
    transactions = [t for t in await store.read_transactions() if in_range(t.date, date_from, date_to)]
    payments = [p for p in await store.read_payments() if in_range(p.date, date_from, date_to)]

    table: Dict[str, CustomerBalanceRow] = {}

    def row_for(name):
        return table.setdefault(name, CustomerBalanceRow(customer_name=name))

    for t in transactions:
        name = normalize_name(t.customer_name)
        if not name:
            continue
        row = row_for(name)
        row.total_sales = to_decimal(row.total_sales + to_decimal(t.total_selling_price))
        row.total_received = to_decimal(row.total_received + to_decimal(t.amount_received_from_customer))

    for p in payments:
        name = normalize_name(p.customer_name)
        if not name:
            continue
        row = row_for(name)
        row.total_received = to_decimal(row.total_received + to_decimal(p.amount))

    for t in transactions:
        amount = to_decimal(t.amount_received_from_supplier)
        name = normalize_name(t.received_by)
        if amount <= ZERO or not name:
            continue
        row = row_for(name)
        row.received_from_supplier = to_decimal(row.received_from_supplier + amount)

    for row in table.values():
        row.diff = to_decimal(row.total_received - row.total_sales - row.received_from_supplier)
    return [table[name] for name in sorted(table)]
