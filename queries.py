# queries.py
# Read-only projections over agreements and installments.
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import joinedload

from models import Agreement, Installment, AgreementStatus, InstallmentStatus
from agreements import effective_status
from exceptions import InvalidArgumentError


@dataclass
class AgreementView:
    agreement: Agreement
    installments: List[Installment]


@dataclass
class UnpaidInstallment:
    installment_id: int
    agreement_id: int
    order_id: str
    installment_number: int
    due_date: str
    installment_amount: int
    status: InstallmentStatus


def _newest_first(query):
    return query.order_by(Agreement.created_at.desc(), Agreement.id.desc()).all()


def _with_installments(session, **criteria) -> Optional[AgreementView]:
    # agreement and installments come from one joined SELECT
    agreement = (
        session.query(Agreement)
        .options(joinedload(Agreement.installments))
        .populate_existing()
        .filter_by(**criteria)
        .one_or_none()
    )
    if agreement is None:
        return None
    return AgreementView(agreement, list(agreement.installments))


def get_with_installments(session, agreement_id) -> Optional[AgreementView]:
    return _with_installments(session, id=agreement_id)


def get_by_order_id(session, order_id) -> Optional[AgreementView]:
    return _with_installments(session, order_id=order_id)


def get_by_customer_id(session, customer_id) -> List[Agreement]:
    return _newest_first(session.query(Agreement).filter_by(customer_id=customer_id))


def list_agreements(session) -> List[Agreement]:
    return _newest_first(session.query(Agreement))


def get_by_status(session, status) -> List[Agreement]:
    if isinstance(status, str):
        try:
            status = AgreementStatus[status.upper()]
        except KeyError as e:
            raise InvalidArgumentError(f"unknown agreement status: {status!r}") from e
    return _newest_first(session.query(Agreement).filter_by(status=status))


def get_unpaid_by_customer(session, customer_id, today=None) -> List[UnpaidInstallment]:
    """
    Every installment not yet paid across the customer's agreements, earliest
    due date first. With `today` given, past-due rows are labelled OVERDUE.
    """
    rows = (
        session.query(Installment, Agreement.order_id)
        .join(Agreement, Installment.agreement_id == Agreement.id)
        .filter(Agreement.customer_id == customer_id)
        .filter(Installment.status != InstallmentStatus.PAID)
        .all()
    )
    result = [
        UnpaidInstallment(
            installment_id=inst.id,
            agreement_id=inst.agreement_id,
            order_id=order_id,
            installment_number=inst.installment_number,
            due_date=inst.due_date,
            installment_amount=inst.installment_amount,
            status=effective_status(inst, today),
        )
        for inst, order_id in rows
    ]
    # zero-padded jalali strings sort chronologically
    result.sort(key=lambda r: (r.due_date or "", r.agreement_id, r.installment_number))
    return result
