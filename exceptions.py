"""Error taxonomy of the installment engine."""


class InstallmentError(Exception):
    """Base exception for all installment engine errors."""

    retryable = False


class InvalidArgumentError(InstallmentError):
    """Raised for bad amounts, rates or installment counts."""


class InvalidDateError(InvalidArgumentError):
    """Raised when a Jalali date string is malformed or out of range."""


class NotFoundError(InstallmentError):
    """Raised when an agreement or installment id does not exist."""


class InvalidStateError(InstallmentError):
    """Raised when a transition is not allowed from the current status."""


class AlreadyPaidError(InvalidStateError):
    """Raised when paying an installment that is already paid."""


class InsufficientPaymentError(InstallmentError):
    """Raised when the paid amount is below the installment amount."""


class ConcurrencyConflictError(InstallmentError):
    """Raised when a concurrent write to the same agreement won the race.

    The caller should retry the whole operation.
    """

    retryable = True
