# app/models/transaction_models.py
from decimal import Decimal
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.db import Base


class Transaction(Base):
    """Operations log entry. Maintained elsewhere; the ledger only reads it."""
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(String, nullable=False, index=True)
    operation_number = Column(String, nullable=True, index=True)

    customer_name = Column(String, nullable=True, index=True)
    supplier_name = Column(String, nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)

    total_selling_price = Column(Numeric(14, 2), nullable=True, default=Decimal("0.00"))
    # money collected from the customer, embedded payments included
    amount_received_from_customer = Column(Numeric(14, 2), nullable=True, default=Decimal("0.00"))
    amount_received_from_supplier = Column(Numeric(14, 2), nullable=True, default=Decimal("0.00"))
    # customer who collected the supplier's money
    received_by = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    customer_payments = relationship(
        "TransactionPayment", back_populates="transaction", cascade="all, delete-orphan", lazy="selectin",
        order_by="TransactionPayment.id",
    )


class TransactionPayment(Base):
    __tablename__ = "transaction_payments"

    id = Column(Integer, primary_key=True, index=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(DateTime(timezone=True), nullable=True)
    amount = Column(Numeric(14, 2), nullable=True)
    applied = Column(Boolean, default=False)

    transaction = relationship("Transaction", back_populates="customer_payments")
