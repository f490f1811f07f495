"""Tests for the read-only agreement projections."""

import datetime

import pytest
from sqlalchemy import event

from agreements import approve, mark_installment_paid
from exceptions import InvalidArgumentError
from models import AgreementStatus, InstallmentStatus
from queries import (
    get_by_customer_id,
    get_by_order_id,
    get_by_status,
    get_unpaid_by_customer,
    get_with_installments,
    list_agreements,
)


@pytest.fixture
def ticking_clock():
    """Clock that advances one minute per call."""
    start = datetime.datetime(2024, 4, 3, 9, 0, 0)
    calls = iter(range(1000))
    return lambda: start + datetime.timedelta(minutes=next(calls))


class TestAggregateReads:
    def test_with_installments(self, session, make_agreement) -> None:
        agreement_id = make_agreement(order_id="order-a")
        view = get_with_installments(session, agreement_id)

        assert view.agreement.id == agreement_id
        assert [i.installment_number for i in view.installments] == list(range(1, 13))

    def test_with_installments_missing(self, session) -> None:
        assert get_with_installments(session, 42) is None

    def test_by_order_id(self, session, make_agreement) -> None:
        agreement_id = make_agreement(order_id="order-a")
        view = get_by_order_id(session, "order-a")

        assert view.agreement.id == agreement_id
        assert len(view.installments) == 12
        assert get_by_order_id(session, "order-missing") is None

    def test_agreement_and_installments_read_together(self, session, engine, make_agreement) -> None:
        agreement_id = make_agreement(order_id="order-a")
        session.expire_all()
        statements = []

        def record(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        event.listen(engine, "before_cursor_execute", record)
        try:
            view = get_with_installments(session, agreement_id)
            numbers = [i.installment_number for i in view.installments]
            status = view.agreement.status
        finally:
            event.remove(engine, "before_cursor_execute", record)

        assert len(statements) == 1
        assert numbers == list(range(1, 13))
        assert status == AgreementStatus.PENDING


class TestListing:
    def test_newest_first(self, session, make_agreement, ticking_clock) -> None:
        first = make_agreement(clock=ticking_clock)
        second = make_agreement(clock=ticking_clock)
        third = make_agreement(clock=ticking_clock, customer_id="cust-002")

        assert [a.id for a in list_agreements(session)] == [third, second, first]
        assert [a.id for a in get_by_customer_id(session, "cust-001")] == [second, first]
        assert get_by_customer_id(session, "cust-unknown") == []

    def test_by_status(self, session, make_agreement, ticking_clock) -> None:
        first = make_agreement(clock=ticking_clock)
        second = make_agreement(clock=ticking_clock)
        third = make_agreement(clock=ticking_clock)
        approve(session, first, "user-manager", clock=ticking_clock)
        approve(session, third, "user-manager", clock=ticking_clock)

        assert [a.id for a in get_by_status(session, AgreementStatus.APPROVED)] == [third, first]
        assert [a.id for a in get_by_status(session, "pending")] == [second]
        assert get_by_status(session, "completed") == []

    def test_unknown_status(self, session) -> None:
        with pytest.raises(InvalidArgumentError):
            get_by_status(session, "archived")


class TestUnpaidByCustomer:
    def test_sorted_by_due_date_without_paid(self, session, make_agreement, clock) -> None:
        late = make_agreement(order_id="order-late", agreement_date="1403/03/01", installment_count=2,
                              total_amount=2_000_000, down_payment=0, annual_rate=0)
        early = make_agreement(order_id="order-early", agreement_date="1403/01/20", installment_count=3,
                               total_amount=3_000_000, down_payment=0, annual_rate=0)
        make_agreement(order_id="order-other", customer_id="cust-002")

        first_early = get_with_installments(session, early).installments[0]
        mark_installment_paid(session, first_early.id, "user-cashier", 1_000_000, "1403/02/20", clock=clock)

        rows = get_unpaid_by_customer(session, "cust-001")

        assert [(r.order_id, r.installment_number, r.due_date) for r in rows] == [
            ("order-early", 2, "1403/03/20"),
            ("order-late", 1, "1403/04/01"),
            ("order-early", 3, "1403/04/20"),
            ("order-late", 2, "1403/05/01"),
        ]
        assert {r.agreement_id for r in rows} == {early, late}
        assert all(r.installment_amount == 1_000_000 for r in rows)
        assert all(r.status == InstallmentStatus.PENDING for r in rows)

    def test_overdue_label(self, session, make_agreement) -> None:
        make_agreement()
        rows = get_unpaid_by_customer(session, "cust-001", today="1403/03/20")

        statuses = [r.status for r in rows]
        # 1403/02/15 and 1403/03/15 have passed
        assert statuses[:2] == [InstallmentStatus.OVERDUE, InstallmentStatus.OVERDUE]
        assert set(statuses[2:]) == {InstallmentStatus.PENDING}

    def test_fully_paid_customer(self, session, make_agreement, clock) -> None:
        agreement_id = make_agreement(installment_count=1, total_amount=1_000_000, down_payment=0, annual_rate=0)
        inst = get_with_installments(session, agreement_id).installments[0]
        mark_installment_paid(session, inst.id, "user-cashier", 1_000_000, "1403/02/15", clock=clock)

        assert get_unpaid_by_customer(session, "cust-001") == []
