# tests/test_ledger_store.py
import asyncio
import datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.models.ledger_models import Payment, SaleStatus
from app.services.ledger_services import allocation_service, ledger_store
from app.services.ledger_services.errors import ConcurrencyConflict, LedgerValidationError, StoreCommitFailure
from app.services.ledger_services.ledger_store import LedgerStore, CreateRecord, UpdateRecord


def day(d):
    return datetime.datetime(2024, 1, d)


def _payment_values(amount="10"):
    return dict(customer_name="Acme", supplier_name=None, date=day(1), amount=Decimal(amount))


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(ledger_store, "COMMIT_RETRY_BACKOFF_SECONDS", 0)


async def test_stale_update_rolls_back_whole_batch(store, sell):
    inv = (await sell("Acme", 100, day(1))).invoice

    with pytest.raises(ConcurrencyConflict):
        await store.commit_batch([
            CreateRecord(Payment, _payment_values(), ref="payment"),
            UpdateRecord(inv.id, inv.version + 7, {"paid_amount": Decimal("100"), "status": SaleStatus.PAID}),
        ], activity_message="should not be written")

    assert await store.read_payments("Acme") == []
    fresh = (await store.read_invoices("Acme"))[0]
    assert fresh.paid_amount == Decimal("0")
    assert fresh.version == inv.version


async def test_update_bumps_version(store, sell):
    inv = (await sell("Acme", 100, day(1))).invoice

    await store.commit_batch([UpdateRecord(inv.id, inv.version, {"notes": "checked"})])

    fresh = (await store.read_invoices("Acme"))[0]
    assert fresh.version == inv.version + 1
    assert fresh.notes == "checked"


class FlakyStore(LedgerStore):
    def __init__(self, *args, failures=1, **kwargs):
        super().__init__(*args, **kwargs)
        self.failures = failures
        self.calls = 0

    async def _apply(self, mutations, activity_message):
        self.calls += 1
        if self.calls <= self.failures:
            raise OperationalError("COMMIT", {}, Exception("database is locked"))
        return await super()._apply(mutations, activity_message)


async def test_transient_store_error_is_retried(session_factory, monkeypatch):
    monkeypatch.setattr(ledger_store, "COMMIT_MAX_ATTEMPTS", 3)
    store = FlakyStore(session_factory, "acct-1", failures=2)

    created = await store.commit_batch([CreateRecord(Payment, _payment_values(), ref="payment")])

    assert store.calls == 3
    assert created["payment"].id is not None
    assert len(await store.read_payments("Acme")) == 1


async def test_exhausted_retries_raise_store_commit_failure(session_factory, monkeypatch, locks):
    monkeypatch.setattr(ledger_store, "COMMIT_MAX_ATTEMPTS", 2)
    store = FlakyStore(session_factory, "acct-1", failures=5)

    with pytest.raises(StoreCommitFailure):
        await allocation_service.apply_customer_payment(store, "Acme", Decimal("10"), day(1), locks=locks)

    assert store.calls == 2
    assert await store.read_payments("Acme") == []
    assert await store.read_credits("Acme") == []


async def test_constraint_violation_is_not_retried(store, monkeypatch):
    monkeypatch.setattr(ledger_store, "COMMIT_MAX_ATTEMPTS", 3)
    calls = []
    real_apply = store._apply

    async def counting_apply(mutations, activity_message):
        calls.append(1)
        return await real_apply(mutations, activity_message)

    payment = (await store.commit_batch([CreateRecord(Payment, _payment_values(), ref="payment")]))["payment"]
    monkeypatch.setattr(store, "_apply", counting_apply)

    with pytest.raises(LedgerValidationError) as exc:
        await store.commit_batch([UpdateRecord(payment.id, payment.version, {"payment_method": None}, model=Payment)])

    assert len(calls) == 1
    assert "SQL" not in str(exc.value)
    assert (await store.get_payment(payment.id)).version == payment.version


async def test_commit_failure_message_hides_driver_text(session_factory, monkeypatch):
    monkeypatch.setattr(ledger_store, "COMMIT_MAX_ATTEMPTS", 1)
    store = FlakyStore(session_factory, "acct-1", failures=1)

    with pytest.raises(StoreCommitFailure) as exc:
        await store.commit_batch([CreateRecord(Payment, _payment_values())])

    assert "database is locked" not in str(exc.value)


class RacingStore(LedgerStore):
    """Another writer touches the customer's invoices right after each read."""

    def __init__(self, *args, races=1, **kwargs):
        super().__init__(*args, **kwargs)
        self.races = races

    async def read_invoices(self, customer_name, statuses=None):
        invoices = await super().read_invoices(customer_name, statuses)
        if self.races > 0:
            self.races -= 1
            for inv in invoices:
                await super().commit_batch([UpdateRecord(inv.id, inv.version, {"notes": "touched"})])
        return invoices


async def test_conflict_reruns_read_compute_commit(session_factory, sell, locks):
    store = RacingStore(session_factory, "acct-1", races=1)
    await sell("Acme", 100, day(1), target=store)

    result = await allocation_service.apply_customer_payment(store, "Acme", Decimal("60"), day(2), locks=locks)

    assert len(result.updated_invoices) == 1
    invoice = (await store.read_invoices("Acme"))[0]
    assert invoice.paid_amount == Decimal("60")
    assert invoice.notes == "touched"
    assert len(await store.read_payments("Acme")) == 1


async def test_persistent_conflict_surfaces_without_partial_writes(session_factory, sell, locks, monkeypatch):
    monkeypatch.setattr(allocation_service, "ALLOCATION_MAX_ATTEMPTS", 2)
    store = RacingStore(session_factory, "acct-1", races=10)
    await sell("Acme", 100, day(1), target=store)

    with pytest.raises(ConcurrencyConflict):
        await allocation_service.apply_customer_payment(store, "Acme", Decimal("60"), day(2), locks=locks)

    assert await store.read_payments("Acme") == []
    assert (await store.read_invoices("Acme"))[0].paid_amount == Decimal("0")


async def test_concurrent_payments_do_not_double_allocate(store, sell, pay):
    await sell("Acme", 100, day(1))
    await sell("Acme", 100, day(2))

    await asyncio.gather(pay("Acme", 150, day(3)), pay("Acme", 150, day(3)))

    invoices = await store.read_invoices("Acme")
    credits = await store.read_credits("Acme")
    assert [i.paid_amount for i in invoices] == [Decimal("100"), Decimal("100")]
    assert sum(c.amount for c in credits) == Decimal("100")
    assert sum(p.amount for p in await store.read_payments("Acme")) == Decimal("300")
