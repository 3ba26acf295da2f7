# app/services/ledger_services/ledger_store.py
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.core.config import COMMIT_MAX_ATTEMPTS, COMMIT_RETRY_BACKOFF_SECONDS
from app.models.ledger_models import LedgerRecord, SaleInvoice, CreditEntry, Payment, SaleStatus
from app.models.transaction_models import Transaction
from app.services.ledger_services.errors import ConcurrencyConflict, LedgerValidationError, StoreCommitFailure
from app.utils.activity_helpers import log_user_activity
from app.utils.date_utils import to_naive_utc, upper_bound
from app.utils.names import normalize_name

logger = logging.getLogger(__name__)


# --------------------------
# Batch mutations
# --------------------------
@dataclass
class CreateRecord:
    """Insert a new row. `ref` lets a later mutation point at the row's id."""
    model: type
    values: Dict[str, Any]
    ref: Optional[str] = None
    # value key -> ref of an earlier CreateRecord whose id fills it
    links: Dict[str, str] = field(default_factory=dict)


@dataclass
class UpdateRecord:
    record_id: int
    expected_version: int
    values: Dict[str, Any]
    model: type = LedgerRecord


@dataclass
class DeleteRecord:
    record_id: int
    expected_version: Optional[int] = None
    model: type = LedgerRecord


Mutation = CreateRecord | UpdateRecord | DeleteRecord


class LedgerStore:
    """
    Tenant-scoped access to invoices, credit entries and payments.

    Reads return detached snapshots (the session factory does not expire on
    commit). Writes go through `commit_batch`, which applies every mutation
    in one database transaction or none of them.
    """

    def __init__(self, session_factory: sessionmaker, account_id: str):
        self.session_factory = session_factory
        self.account_id = account_id

    # --------------------------
    # Reads
    # --------------------------
    async def read_invoices(self, customer_name: str, statuses: Optional[Iterable[SaleStatus]] = None) -> List[SaleInvoice]:
        stmt = (
            select(SaleInvoice)
            .where(SaleInvoice.account_id == self.account_id)
            .where(SaleInvoice.customer_name == normalize_name(customer_name))
        )
        if statuses is not None:
            stmt = stmt.where(SaleInvoice.status.in_(list(statuses)))
        stmt = stmt.order_by(SaleInvoice.date.asc(), SaleInvoice.id.asc())
        return await self._all(stmt)

    async def read_credits(self, customer_name: str) -> List[CreditEntry]:
        stmt = (
            select(CreditEntry)
            .where(CreditEntry.account_id == self.account_id)
            .where(CreditEntry.customer_name == normalize_name(customer_name))
            .order_by(CreditEntry.date.asc(), CreditEntry.id.asc())
        )
        return await self._all(stmt)

    async def read_payments(self, customer_name: Optional[str] = None, supplier_name: Optional[str] = None) -> List[Payment]:
        stmt = select(Payment).where(Payment.account_id == self.account_id)
        if customer_name is not None:
            stmt = stmt.where(Payment.customer_name == normalize_name(customer_name))
        if supplier_name is not None:
            stmt = stmt.where(Payment.supplier_name == normalize_name(supplier_name))
        stmt = stmt.order_by(Payment.date.asc(), Payment.id.asc())
        return await self._all(stmt)

    async def list_invoices(self, customer_name: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[LedgerRecord]:
        stmt = select(LedgerRecord).where(LedgerRecord.account_id == self.account_id)
        if customer_name is not None:
            stmt = stmt.where(LedgerRecord.customer_name == normalize_name(customer_name))
        stmt = stmt.order_by(LedgerRecord.date.desc(), LedgerRecord.id.desc()).limit(limit).offset(offset)
        return await self._all(stmt)

    async def read_transactions(self, date_from: Optional[datetime] = None, date_to: Optional[datetime] = None) -> List[Transaction]:
        stmt = select(Transaction).where(Transaction.account_id == self.account_id)
        if date_from is not None:
            stmt = stmt.where(Transaction.date >= to_naive_utc(date_from))
        if date_to is not None:
            stmt = stmt.where(Transaction.date < upper_bound(date_to))
        stmt = stmt.order_by(Transaction.date.asc(), Transaction.id.asc())
        return await self._all(stmt)

    async def read_all_invoices(self) -> List[SaleInvoice]:
        stmt = (
            select(SaleInvoice)
            .where(SaleInvoice.account_id == self.account_id)
            .order_by(SaleInvoice.date.asc(), SaleInvoice.id.asc())
        )
        return await self._all(stmt)

    async def get_record(self, record_id: int) -> Optional[LedgerRecord]:
        return await self._one(
            select(LedgerRecord).where(LedgerRecord.id == record_id, LedgerRecord.account_id == self.account_id)
        )

    async def get_payment(self, payment_id: int) -> Optional[Payment]:
        return await self._one(
            select(Payment).where(Payment.id == payment_id, Payment.account_id == self.account_id)
        )

    async def get_credit_for_payment(self, payment_id: int) -> Optional[CreditEntry]:
        return await self._one(
            select(CreditEntry).where(
                CreditEntry.source_payment_id == payment_id,
                CreditEntry.account_id == self.account_id,
            )
        )

    async def _all(self, stmt) -> list:
        async with self.session_factory() as session:
            res = await session.execute(stmt)
            return list(res.scalars().all())

    async def _one(self, stmt):
        async with self.session_factory() as session:
            res = await session.execute(stmt)
            return res.scalar_one_or_none()

    # --------------------------
    # Writes
    # --------------------------
    async def commit_batch(self, mutations: Sequence[Mutation], activity_message: Optional[str] = None) -> Dict[str, Any]:
        """
        Apply `mutations` atomically and return the created rows keyed by ref.

        A version mismatch raises ConcurrencyConflict and a constraint violation
        raises LedgerValidationError, both straight away. Other store errors are
        retried with backoff and surface as StoreCommitFailure.
        """
        last_error: Optional[Exception] = None
        for attempt in range(COMMIT_MAX_ATTEMPTS):
            try:
                return await self._apply(mutations, activity_message)
            except ConcurrencyConflict:
                raise
            except IntegrityError as e:
                logger.warning("Ledger batch rejected for account %s: %s", self.account_id, e.orig)
                raise LedgerValidationError("Ledger batch violates a data constraint") from e
            except SQLAlchemyError as e:
                last_error = e
                delay = COMMIT_RETRY_BACKOFF_SECONDS * (2 ** attempt)
                logger.warning(
                    "Ledger commit attempt %s/%s failed for account %s: %s",
                    attempt + 1, COMMIT_MAX_ATTEMPTS, self.account_id, e,
                )
                if attempt + 1 < COMMIT_MAX_ATTEMPTS:
                    await asyncio.sleep(delay)

        logger.error("Ledger commit gave up after %s attempts for account %s", COMMIT_MAX_ATTEMPTS, self.account_id)
        raise StoreCommitFailure(
            f"Could not commit ledger batch after {COMMIT_MAX_ATTEMPTS} attempts"
        ) from last_error

    async def _apply(self, mutations: Sequence[Mutation], activity_message: Optional[str]) -> Dict[str, Any]:
        created: Dict[str, Any] = {}
        async with self.session_factory() as session:
            async with session.begin():
                for m in mutations:
                    if isinstance(m, CreateRecord):
                        values = dict(m.values)
                        for key, ref in m.links.items():
                            values[key] = created[ref].id
                        obj = m.model(account_id=self.account_id, **values)
                        session.add(obj)
                        await session.flush()
                        await session.refresh(obj)
                        if m.ref:
                            created[m.ref] = obj
                    elif isinstance(m, UpdateRecord):
                        values = dict(m.values)
                        values["version"] = m.expected_version + 1
                        res = await session.execute(
                            update(m.model)
                            .where(m.model.id == m.record_id)
                            .where(m.model.account_id == self.account_id)
                            .where(m.model.version == m.expected_version)
                            .values(**values)
                            .execution_options(synchronize_session=False)
                        )
                        if res.rowcount != 1:
                            raise ConcurrencyConflict(f"Record {m.record_id} changed since it was read")
                    elif isinstance(m, DeleteRecord):
                        stmt = (
                            delete(m.model)
                            .where(m.model.id == m.record_id)
                            .where(m.model.account_id == self.account_id)
                        )
                        if m.expected_version is not None:
                            stmt = stmt.where(m.model.version == m.expected_version)
                        res = await session.execute(stmt.execution_options(synchronize_session=False))
                        if res.rowcount != 1:
                            raise ConcurrencyConflict(f"Record {m.record_id} changed since it was read")
                    else:
                        raise TypeError(f"Unknown mutation {m!r}")

                if activity_message:
                    await log_user_activity(session, account_id=self.account_id, message=activity_message)

        return created
