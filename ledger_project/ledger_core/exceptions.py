class LedgerError(Exception):
    """Base class for failures raised by the settlement engine."""
    pass


class NotFoundError(LedgerError):
    """Raised when a contact, bank account, payment or target transaction
    does not exist or belongs to another company."""
    pass


class InsufficientBalanceError(LedgerError):
    """Raised when a bank account would go below zero where that is disallowed."""
    pass


class ConcurrencyConflict(LedgerError):
    """Raised when the database reports a lock timeout or deadlock.
    Nothing was committed, the caller may retry."""
    retryable = True
