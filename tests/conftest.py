# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - every test gets its own file-backed SQLite database under tmp_path
# - tables are created from Base.metadata, no migrations involved
# - services receive a fresh lock registry so no lock outlives its loop
# ---------------------------------------------------------------------
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

import app.models  # noqa: F401  registers tables
from app.core.db import Base
from app.services.ledger_services import allocation_service
from app.services.ledger_services.ledger_store import LedgerStore
from app.utils.customer_locks import CustomerLockRegistry

ACCOUNT = "acct-1"


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)
    yield factory
    await engine.dispose()


@pytest.fixture
def store(session_factory):
    return LedgerStore(session_factory, ACCOUNT)


@pytest.fixture
def locks():
    return CustomerLockRegistry()


@pytest.fixture
def sell(store, locks):
    async def _sell(customer, amount, when, supplier="Factory A", target=None):
        result = await allocation_service.record_customer_sale(
            target or store, customer, Decimal(str(amount)), when, supplier_name=supplier, locks=locks
        )
        return result
    return _sell


@pytest.fixture
def pay(store, locks):
    async def _pay(customer, amount, when, supplier="Factory A", target=None):
        return await allocation_service.apply_customer_payment(
            target or store, customer, Decimal(str(amount)), when, supplier_name=supplier, locks=locks
        )
    return _pay
