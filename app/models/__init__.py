# app/models/__init__.py
from app.models.ledger_models import LedgerRecord, SaleInvoice, CreditEntry, Payment
from app.models.transaction_models import Transaction, TransactionPayment
from app.models.activity_models import UserActivity
