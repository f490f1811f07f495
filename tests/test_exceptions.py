"""Tests for the error taxonomy."""

from exceptions import (
    AlreadyPaidError,
    ConcurrencyConflictError,
    InstallmentError,
    InsufficientPaymentError,
    InvalidArgumentError,
    InvalidDateError,
    InvalidStateError,
    NotFoundError,
)


class TestExceptionHierarchy:
    def test_base_is_exception(self) -> None:
        assert isinstance(InstallmentError("test"), Exception)

    def test_invalid_date_is_invalid_argument(self) -> None:
        err = InvalidDateError("test")
        assert isinstance(err, InvalidArgumentError)
        assert isinstance(err, InstallmentError)

    def test_already_paid_is_invalid_state(self) -> None:
        assert isinstance(AlreadyPaidError("test"), InvalidStateError)

    def test_others_derive_from_base(self) -> None:
        for cls in (NotFoundError, InsufficientPaymentError, ConcurrencyConflictError):
            assert isinstance(cls("test"), InstallmentError)

    def test_only_conflicts_are_retryable(self) -> None:
        assert ConcurrencyConflictError("test").retryable
        for cls in (InvalidArgumentError, InvalidDateError, NotFoundError, AlreadyPaidError,
                    InsufficientPaymentError, InvalidStateError):
            assert not cls("test").retryable

    def test_exception_message(self) -> None:
        err = NotFoundError("installment 7 not found")
        assert str(err) == "installment 7 not found"
