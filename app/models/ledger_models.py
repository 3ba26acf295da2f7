# app/models/ledger_models.py
from decimal import Decimal
import enum
from sqlalchemy import (
    Column, Integer, String, ForeignKey, Numeric, DateTime, Enum, Index, Text
)
from sqlalchemy.sql import func
from app.core.db import Base


class SaleStatus(str, enum.Enum):
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    CREDIT_BALANCE = "credit_balance"
    ADVANCE_PAYMENT = "advance_payment"


class RecordKind(str, enum.Enum):
    INVOICE = "invoice"
    CREDIT = "credit"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    DEPOSIT = "deposit"
    CHEQUE = "cheque"
    CREDIT_DEDUCTION = "credit_deduction"


class ReceivedStatus(str, enum.Enum):
    RECEIVED = "received"
    NOT_RECEIVED = "not_received"
    PENDING = "pending"


OPEN_STATUSES = (SaleStatus.PENDING, SaleStatus.PARTIALLY_PAID)


class LedgerRecord(Base):
    """
    One row per invoice-shaped record. `kind` discriminates ordinary sale
    invoices from credit entries; both share the amount/paid_amount columns.
    """
    __tablename__ = "ledger_records"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(String, nullable=False, index=True)
    kind = Column(String(16), nullable=False)
    invoice_number = Column(String, nullable=False)

    customer_name = Column(String, nullable=False)
    supplier_name = Column(String, nullable=True)

    date = Column(DateTime(timezone=True), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    paid_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    status = Column(Enum(SaleStatus, name="sale_status"), default=SaleStatus.PENDING, nullable=False)

    payment_date = Column(DateTime(timezone=True), nullable=True)
    payment_method = Column(String, nullable=True)
    operation_number = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    # bumped by every engine write; compared at commit time
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())

    __mapper_args__ = {"polymorphic_on": kind}
    __table_args__ = (
        Index("ix_ledger_records_account_customer", "account_id", "customer_name", "kind"),
    )

    @property
    def outstanding(self) -> Decimal:
        return Decimal(self.amount or 0) - Decimal(self.paid_amount or 0)


class SaleInvoice(LedgerRecord):
    __mapper_args__ = {"polymorphic_identity": RecordKind.INVOICE.value}


class CreditEntry(LedgerRecord):
    """Unapplied customer overpayment; paid_amount tracks what later invoices consumed."""
    __mapper_args__ = {"polymorphic_identity": RecordKind.CREDIT.value}

    source_payment_id = Column(
        Integer, ForeignKey("customer_payments.id", ondelete="SET NULL"), nullable=True, index=True
    )


class Payment(Base):
    __tablename__ = "customer_payments"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(String, nullable=False, index=True)

    customer_name = Column(String, nullable=False, index=True)
    supplier_name = Column(String, nullable=True)

    date = Column(DateTime(timezone=True), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    payment_method = Column(Enum(PaymentMethod, name="payment_method"), default=PaymentMethod.CASH, nullable=False)
    received_status = Column(Enum(ReceivedStatus, name="received_status"), default=ReceivedStatus.PENDING, nullable=False)

    bank_name = Column(String, nullable=True)
    reference_number = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    confirmed_date = Column(DateTime(timezone=True), nullable=True)
    confirmed_by = Column(String, nullable=True)

    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
