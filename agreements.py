# agreements.py
"""
Agreement lifecycle: creation of an agreement with its full installment
schedule, approval, cancellation and installment payment.

Every function takes a SQLAlchemy session and commits its own unit of work.
Payments bump the parent agreement's version counter, so two writers racing
on the same agreement cannot both commit; the loser gets
ConcurrencyConflictError and should retry.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from models import Agreement, Installment, AgreementStatus, InstallmentStatus, utcnow
from logic import compute_schedule, to_decimal
from calendar_helper import installment_due_date, normalize_date, parse_date
from exceptions import (
    AlreadyPaidError,
    ConcurrencyConflictError,
    InsufficientPaymentError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (AgreementStatus.COMPLETED, AgreementStatus.CANCELLED)


@dataclass
class PaymentReceipt:
    success: bool
    paid_at: datetime.datetime
    payment_date: str
    paid_amount: int
    agreement_completed: bool = False


@contextmanager
def _unit_of_work(session):
    try:
        yield
        session.commit()
    except StaleDataError as e:
        session.rollback()
        raise ConcurrencyConflictError("agreement was modified concurrently, retry the operation") from e
    except Exception:
        session.rollback()
        raise


def _get_agreement(session, agreement_id, lock=False):
    query = session.query(Agreement).filter_by(id=agreement_id)
    if lock:
        query = query.with_for_update().populate_existing()
    agreement = query.first()
    if agreement is None:
        raise NotFoundError(f"agreement {agreement_id} not found")
    return agreement


def _whole_rials(value, name):
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{name} is not a number: {value!r}")
    amount = to_decimal(value, name)
    if not amount.is_finite() or amount != amount.to_integral_value():
        raise InvalidArgumentError(f"{name} must be whole Rials: {value!r}")
    return int(amount)


def _touch(agreement, now):
    agreement.updated_at = now
    agreement.version = (agreement.version or 0) + 1


def create_agreement(session, order_id, customer_id, total_amount, down_payment,
                     installment_count, annual_rate, guarantee_type, agreement_date,
                     created_by, clock=None) -> int:
    """
    Store a new PENDING agreement and all of its installments in one commit.
    agreement_date: jalali "YYYY/MM/DD" (Gregorian input is converted)
    returns: the new agreement id
    """
    clock = clock or utcnow
    if total_amount < 0:
        raise InvalidArgumentError("total amount cannot be negative")
    if down_payment < 0:
        raise InvalidArgumentError("down payment cannot be negative")
    if down_payment > total_amount:
        raise InvalidArgumentError("down payment cannot exceed the total amount")
    agreement_date = normalize_date(agreement_date)

    principal = total_amount - down_payment
    schedule = compute_schedule(principal, annual_rate, installment_count)

    with _unit_of_work(session):
        if session.query(Agreement.id).filter_by(order_id=order_id).first() is not None:
            raise InvalidArgumentError(f"order {order_id} already has an installment agreement")

        now = clock()
        agreement = Agreement(
            order_id=order_id,
            customer_id=customer_id,
            total_amount=total_amount,
            down_payment=down_payment,
            principal_amount=principal,
            installment_count=installment_count,
            annual_rate=schedule.annual_rate,
            monthly_rate=schedule.monthly_rate_percent,
            installment_amount=schedule.installment_amount,
            total_interest=schedule.total_interest,
            total_payment=schedule.total_payment,
            guarantee_type=guarantee_type,
            agreement_date=agreement_date,
            status=AgreementStatus.PENDING,
            created_by=created_by,
            created_at=now,
            updated_at=now,
            version=1,
        )
        for row in schedule.rows:
            agreement.installments.append(Installment(
                installment_number=row.number,
                due_date=installment_due_date(agreement_date, row.number),
                installment_amount=row.installment_amount,
                interest_amount=row.interest,
                principal_amount=row.principal,
                remaining_balance=row.remaining_balance,
                status=InstallmentStatus.PENDING,
            ))
        session.add(agreement)
        try:
            session.flush()
        except IntegrityError as e:
            raise InvalidArgumentError(f"order {order_id} already has an installment agreement") from e
        agreement_id = agreement.id

    logger.info(
        "Created agreement %s for order %s: principal=%s, %d x %s, origin %s",
        agreement_id, order_id, principal, installment_count,
        schedule.installment_amount, agreement_date,
    )
    return agreement_id


def approve(session, agreement_id, approved_by, clock=None):
    clock = clock or utcnow
    with _unit_of_work(session):
        agreement = _get_agreement(session, agreement_id, lock=True)
        if agreement.status != AgreementStatus.PENDING:
            raise InvalidStateError(
                f"agreement {agreement_id} is {agreement.status.name}, only PENDING can be approved"
            )
        now = clock()
        agreement.status = AgreementStatus.APPROVED
        agreement.approved_by = approved_by
        agreement.approved_at = now
        _touch(agreement, now)
    logger.info("Agreement %s approved by %s", agreement_id, approved_by)


def cancel(session, agreement_id, cancelled_by, clock=None):
    """Cancel an agreement that is not yet COMPLETED or CANCELLED."""
    clock = clock or utcnow
    with _unit_of_work(session):
        agreement = _get_agreement(session, agreement_id, lock=True)
        if agreement.status in TERMINAL_STATUSES:
            raise InvalidStateError(f"agreement {agreement_id} is already {agreement.status.name}")
        now = clock()
        agreement.status = AgreementStatus.CANCELLED
        agreement.cancelled_by = cancelled_by
        agreement.cancelled_at = now
        _touch(agreement, now)
    logger.info("Agreement %s cancelled by %s", agreement_id, cancelled_by)


def mark_installment_paid(session, installment_id, paid_by, paid_amount, payment_date,
                          paid_at=None, notes=None, clock=None) -> PaymentReceipt:
    """
    Record full payment of one installment and complete the agreement once
    every installment is paid.

    paid_amount below the installment amount is rejected; a larger amount is
    stored as given.
    payment_date: jalali date the customer paid on
    paid_at: explicit timestamp, otherwise taken from the clock
    """
    clock = clock or utcnow
    paid_amount = _whole_rials(paid_amount, "paid amount")
    payment_date = normalize_date(payment_date)

    with _unit_of_work(session):
        installment = (
            session.query(Installment)
            .filter_by(id=installment_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if installment is None:
            raise NotFoundError(f"installment {installment_id} not found")
        if installment.status == InstallmentStatus.PAID:
            raise AlreadyPaidError(f"installment {installment_id} is already paid")
        if paid_amount < installment.installment_amount:
            raise InsufficientPaymentError(
                f"paid {paid_amount}, installment {installment_id} requires {installment.installment_amount}"
            )
        agreement = _get_agreement(session, installment.agreement_id, lock=True)
        if agreement.status == AgreementStatus.CANCELLED:
            raise InvalidStateError(f"agreement {agreement.id} is cancelled")

        now = clock()
        paid_at_value = paid_at or now
        installment.status = InstallmentStatus.PAID
        installment.paid_at = paid_at_value
        installment.paid_by = paid_by
        installment.paid_amount = paid_amount
        installment.payment_date = payment_date
        installment.notes = notes
        session.flush()

        siblings = session.query(Installment).filter_by(agreement_id=agreement.id).all()
        completed = False
        if all(inst.status == InstallmentStatus.PAID for inst in siblings):
            if agreement.status != AgreementStatus.COMPLETED:
                agreement.status = AgreementStatus.COMPLETED
                agreement.completed_at = now
                completed = True
        # always bump the version so it guards the sibling check
        _touch(agreement, now)
        agreement_id = agreement.id
        number = installment.installment_number

    logger.info(
        "Installment %s (#%d of agreement %s) paid by %s: %s",
        installment_id, number, agreement_id, paid_by, paid_amount,
    )
    if completed:
        logger.info("Agreement %s completed, all installments paid", agreement_id)
    return PaymentReceipt(
        success=True,
        paid_at=paid_at_value,
        payment_date=payment_date,
        paid_amount=paid_amount,
        agreement_completed=completed,
    )


def is_overdue(installment, today) -> bool:
    """
    today: jdatetime.date or jalali string
    An unpaid installment whose due date has passed. Never stored.
    """
    if installment.status != InstallmentStatus.PENDING or not installment.due_date:
        return False
    if isinstance(today, str):
        today = parse_date(today)
    return parse_date(installment.due_date) < today


def effective_status(installment, today=None) -> InstallmentStatus:
    if today is not None and is_overdue(installment, today):
        return InstallmentStatus.OVERDUE
    return installment.status
