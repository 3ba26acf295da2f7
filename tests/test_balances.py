# tests/test_balances.py
import datetime
from decimal import Decimal

from app.models.transaction_models import Transaction, TransactionPayment
from app.services.ledger_services import balance_service
from app.services.ledger_services.balance_service import (
    EventType, LedgerEvent, LedgerView, walk_events,
)


def day(d, month=1):
    return datetime.datetime(2024, month, d)


def _event(id, d, type, amount):
    return LedgerEvent(id=id, customer_name="Acme", date=day(d), type=type, amount=Decimal(str(amount)))


async def _seed_operations(session_factory):
    async with session_factory() as session:
        async with session.begin():
            session.add_all([
                Transaction(
                    account_id="acct-1", operation_number="OP-1", customer_name="Acme", supplier_name="Factory A",
                    date=day(1), total_selling_price=Decimal("1000"), amount_received_from_customer=Decimal("300"),
                    amount_received_from_supplier=Decimal("0"),
                    customer_payments=[
                        TransactionPayment(date=day(2), amount=Decimal("300"), applied=True),
                        TransactionPayment(date=None, amount=None),
                    ],
                ),
                Transaction(
                    account_id="acct-1", operation_number="OP-2", customer_name="Beta", supplier_name="Factory B",
                    date=day(3), total_selling_price=None,
                    amount_received_from_supplier=Decimal("50"), received_by=" Acme ",
                ),
                Transaction(
                    account_id="acct-2", operation_number="OP-X", customer_name="Acme", supplier_name="Factory A",
                    date=day(3), total_selling_price=Decimal("999"),
                ),
            ])


# --------------------------
# Running-balance walk
# --------------------------
def test_walk_snapshots_balance_after_each_event():
    rows = walk_events([
        _event("s1", 1, EventType.SALE, 100),
        _event("p1", 2, EventType.PAYMENT, 40),
        _event("p2", 3, EventType.PAYMENT, 80),
    ])
    assert [r.running_balance for r in rows] == [Decimal("-100"), Decimal("-60"), Decimal("20")]
    assert [r.balance_type for r in rows] == ["debtor", "debtor", "creditor"]
    assert rows[-1].cumulative_total_paid == Decimal("120")
    assert rows[-1].cumulative_total_sales == Decimal("100")


def test_sale_sorts_before_payment_on_same_date():
    rows = walk_events([
        _event("p1", 5, EventType.PAYMENT, 100),
        _event("s1", 5, EventType.SALE, 100),
        _event("s0", 4, EventType.SALE, 10),
    ])
    assert [r.id for r in rows] == ["s0", "s1", "p1"]
    assert rows[1].running_balance == Decimal("-110")
    assert rows[2].running_balance == Decimal("-10")


def test_walk_balanced_when_even():
    rows = walk_events([_event("s1", 1, EventType.SALE, 50), _event("p1", 1, EventType.PAYMENT, 50)])
    assert rows[-1].running_balance == 0
    assert rows[-1].balance_type == "balanced"


# --------------------------
# Summaries
# --------------------------
async def test_simple_summary_uses_payment_records(store, sell, pay):
    await sell("Acme", 100, day(1), supplier="Factory A")
    await sell("Acme", 200, day(2), supplier="Factory B")
    await pay("Acme", 250, day(3), supplier="Factory A")

    summary = await balance_service.compute_summary(store, "Acme")

    assert summary.total_sales == Decimal("300")
    assert summary.total_paid == Decimal("250")
    assert summary.balance == Decimal("-50")
    assert summary.balance_type == "debtor"
    assert summary.outstanding_due == Decimal("50")
    assert summary.invoice_count == 2
    assert summary.payment_count == 1
    assert summary.first_date == day(1)
    assert summary.last_date == day(3)


async def test_credit_entries_are_not_sales(store, pay):
    await pay("Acme", 100, day(1))

    summary = await balance_service.compute_summary(store, "Acme")

    assert summary.total_sales == 0
    assert summary.total_paid == Decimal("100")
    assert summary.credit_available == Decimal("100")
    assert summary.balance_type == "creditor"


async def test_pair_summary_is_scoped_to_supplier(store, sell, pay):
    await sell("Acme", 100, day(1), supplier="Factory A")
    await sell("Acme", 200, day(2), supplier="Factory B")
    await pay("Acme", 150, day(3), supplier="Factory B")

    summary = await balance_service.compute_summary(store, "Acme", "Factory B")

    assert summary.supplier_name == "Factory B"
    assert summary.total_sales == Decimal("200")
    assert summary.total_paid == Decimal("150")
    assert summary.balance == Decimal("-50")


async def test_pair_summaries_cover_every_pair(store, sell, pay):
    await sell("Acme", 100, day(1), supplier="Factory A")
    await pay("Acme", 100, day(2), supplier="Factory A")
    await sell("Beta", 70, day(1), supplier="Factory B")

    summaries = await balance_service.compute_pair_summaries(store)

    assert [(s.customer_name, s.supplier_name) for s in summaries] == [
        ("Acme", "Factory A"), ("Beta", "Factory B"),
    ]
    assert summaries[0].balance_type == "balanced"
    assert summaries[1].balance == Decimal("-70")


async def test_date_range_filters_summary(store, sell, pay):
    await sell("Acme", 100, day(1))
    await sell("Acme", 100, day(10))
    await pay("Acme", 30, day(12))

    summary = await balance_service.compute_summary(store, "Acme", date_from=day(5), date_to=day(11))

    assert summary.total_sales == Decimal("100")
    assert summary.total_paid == 0


# --------------------------
# Ledgers
# --------------------------
async def test_invoice_ledger_matches_scenario(store, sell, pay):
    await sell("Acme", 1000, day(1))
    await sell("Acme", 500, day(10))
    await pay("Acme", 1200, day(15))
    await pay("Acme", 400, day(20))

    rows = await balance_service.compute_ledger(store, "Acme")

    assert [r.transaction_type for r in rows] == [EventType.SALE, EventType.SALE, EventType.PAYMENT, EventType.PAYMENT]
    assert [r.running_balance for r in rows] == [
        Decimal("-1000"), Decimal("-1500"), Decimal("-300"), Decimal("100"),
    ]


async def test_aggregation_is_idempotent(store, sell, pay):
    await sell("Acme", 100, day(1))
    await pay("Acme", 60, day(1))
    await pay("Acme", 60, day(2))

    assert await balance_service.compute_ledger(store, "Acme") == await balance_service.compute_ledger(store, "Acme")
    assert await balance_service.compute_summary(store, "Acme") == await balance_service.compute_summary(store, "Acme")


async def test_operations_ledger_includes_embedded_and_supplier_money(store, session_factory, pay):
    await _seed_operations(session_factory)
    await pay("Acme", 100, day(4), supplier="Factory A")

    rows = await balance_service.compute_ledger(store, "Acme", view=LedgerView.OPERATIONS)

    assert [r.id for r in rows][:3] == ["sale-1", "intpay-1-0", "supplier-2"]
    assert rows[0].sale_amount == Decimal("1000")
    assert rows[1].payment_amount == Decimal("300")
    assert rows[2].supplier_amount == Decimal("50")
    assert rows[2].running_balance == Decimal("-750")
    assert rows[-1].running_balance == Decimal("-650")
    assert rows[-1].cumulative_supplier == Decimal("50")
    assert all(r.date.year == 2024 for r in rows)


async def test_customer_balance_table(store, session_factory):
    await _seed_operations(session_factory)

    rows = await balance_service.compute_customer_balances(store)

    assert [r.customer_name for r in rows] == ["Acme", "Beta"]
    acme, beta = rows
    assert acme.total_sales == Decimal("1000")
    # the embedded 300 is already part of amount_received_from_customer
    assert acme.total_received == Decimal("300")
    assert acme.received_from_supplier == Decimal("50")
    assert acme.diff == Decimal("-750")
    # missing selling price counts as zero
    assert beta.total_sales == 0
    assert beta.diff == 0


async def test_customer_balance_table_adds_standalone_payments(store, session_factory, pay):
    await _seed_operations(session_factory)
    await pay("Acme", 100, day(4))

    acme = (await balance_service.compute_customer_balances(store))[0]

    assert acme.total_received == Decimal("400")
    assert acme.diff == Decimal("-650")


# --------------------------
# Date filters
# --------------------------
async def test_date_to_covers_the_whole_day(store, sell):
    await sell("Acme", 100, datetime.datetime(2024, 1, 15, 10, 0))
    await sell("Acme", 40, datetime.datetime(2024, 1, 16, 0, 0))

    summary = await balance_service.compute_summary(store, "Acme", date_to=day(15))
    assert summary.total_sales == Decimal("100")
    assert summary.invoice_count == 1

    summary = await balance_service.compute_summary(store, "Acme", date_to=datetime.date(2024, 1, 15))
    assert summary.total_sales == Decimal("100")


async def test_date_to_with_a_time_is_inclusive_to_the_instant(store, sell):
    await sell("Acme", 100, datetime.datetime(2024, 1, 15, 10, 0))
    await sell("Acme", 40, datetime.datetime(2024, 1, 15, 18, 0))

    summary = await balance_service.compute_summary(store, "Acme", date_to=datetime.datetime(2024, 1, 15, 10, 0))

    assert summary.total_sales == Decimal("100")


async def test_timezone_aware_bounds_compare_in_utc(store, sell, pay):
    await sell("Acme", 100, day(1))
    await pay("Acme", 30, datetime.datetime(2024, 1, 2, 12, 0))

    utc = datetime.timezone.utc
    summary = await balance_service.compute_summary(
        store, "Acme",
        date_from=datetime.datetime(2024, 1, 2, tzinfo=utc),
        date_to=datetime.datetime(2024, 1, 2, 14, 0, tzinfo=datetime.timezone(datetime.timedelta(hours=2))),
    )
    assert summary.total_sales == 0
    assert summary.total_paid == Decimal("30")

    rows = await balance_service.compute_ledger(
        store, "Acme", view=LedgerView.OPERATIONS, date_from=datetime.datetime(2024, 1, 1, tzinfo=utc)
    )
    assert [r.payment_amount for r in rows] == [Decimal("30")]


async def test_customer_balance_table_honours_date_range(store, session_factory):
    await _seed_operations(session_factory)

    rows = await balance_service.compute_customer_balances(store, date_from=day(2), date_to=day(3))

    assert [r.customer_name for r in rows] == ["Acme", "Beta"]
    assert rows[0].total_sales == 0
    assert rows[0].received_from_supplier == Decimal("50")
