# app/services/ledger_services/errors.py


class LedgerError(Exception):
    """Base class for every failure raised by the ledger services."""


class LedgerValidationError(LedgerError, ValueError):
    """Rejected input; raised before the store is touched."""


class RecordNotFound(LedgerError):
    pass


class ConcurrencyConflict(LedgerError):
    """A record read for an allocation changed before the batch was committed."""


class StoreCommitFailure(LedgerError):
    """The atomic batch could not be written; nothing from it was persisted."""


class PaymentAllocatedError(LedgerError):
    """The payment has already been applied to invoices or consumed credit."""


class InvoiceAllocatedError(LedgerError):
    """The invoice already carries applied money."""
