# logic.py
# Annuity schedule for installment agreements. All money is whole Rials.
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP, getcontext

from config import ROUNDING_INCREMENT
from exceptions import InvalidArgumentError
from calendar_helper import installment_due_date, parse_date

getcontext().prec = 28

ONE = Decimal("1")


@dataclass
class ScheduleRow:
    number: int
    installment_amount: int
    interest: int
    principal: int
    remaining_balance: int


@dataclass
class Schedule:
    principal: int
    annual_rate: Decimal
    monthly_rate: Decimal  # fraction, e.g. 0.03
    installment_amount: int
    total_payment: int
    total_interest: int
    rows: list = field(default_factory=list)

    @property
    def periods(self):
        return len(self.rows)

    @property
    def monthly_rate_percent(self):
        return self.monthly_rate * 100


def to_decimal(value, name):
    try:
        return Decimal(str(value))
    except ArithmeticError as e:
        raise InvalidArgumentError(f"{name} is not a number: {value!r}") from e


def round_half_up(value):
    return int(value.quantize(ONE, rounding=ROUND_HALF_UP))


def round_to_increment(value, increment=ROUNDING_INCREMENT):
    """Round to the nearest multiple of increment, halves away from zero."""
    return round_half_up(value / increment) * increment


def annuity_amount(principal, monthly_rate, periods):
    """
    principal: Decimal
    monthly_rate: Decimal fraction
    periods: int
    returns the unrounded fixed payment
    """
    if monthly_rate == 0:
        return principal / periods
    growth = (ONE + monthly_rate) ** periods
    return principal * monthly_rate * growth / (growth - ONE)


def compute_schedule(principal, annual_rate, periods):
    """
    principal: int (Rials)
    annual_rate: percent (e.g. 36 or Decimal("18.5"))
    periods: int (months)
    returns: Schedule

    The fixed amount is rounded once to the nearest ROUNDING_INCREMENT and
    shared by every period. The last period's principal is the remaining
    balance, so the principal column sums to exactly `principal`.
    """
    if isinstance(periods, bool) or not isinstance(periods, int) or periods <= 0:
        raise InvalidArgumentError(f"installment count must be a positive integer, got {periods!r}")
    principal_d = to_decimal(principal, "principal")
    rate_d = to_decimal(annual_rate, "annual rate")
    if principal_d < 0:
        raise InvalidArgumentError(f"principal cannot be negative: {principal}")
    if principal_d != principal_d.to_integral_value():
        raise InvalidArgumentError(f"principal must be whole Rials: {principal}")
    if rate_d < 0:
        raise InvalidArgumentError(f"annual rate cannot be negative: {annual_rate}")

    principal_i = int(principal_d)
    monthly_rate = rate_d / 12 / 100
    amount = round_to_increment(annuity_amount(principal_d, monthly_rate, periods))

    if principal_i > 0:
        if amount == 0:
            raise InvalidArgumentError(
                f"principal {principal_i} over {periods} months rounds to a zero installment"
            )
        if amount < round_half_up(principal_d * monthly_rate):
            raise InvalidArgumentError(
                f"rounded installment {amount} does not cover the first month's interest"
            )

    total_payment = amount * periods
    schedule = Schedule(
        principal=principal_i,
        annual_rate=rate_d,
        monthly_rate=monthly_rate,
        installment_amount=amount,
        total_payment=total_payment,
        total_interest=total_payment - principal_i,
    )

    balance = principal_i
    for i in range(1, periods + 1):
        interest = round_half_up(balance * monthly_rate)
        if i == periods:
            # last installment absorbs the rounding drift
            principal_part = balance
        else:
            principal_part = min(amount - interest, balance)
        balance = max(0, balance - principal_part)
        schedule.rows.append(ScheduleRow(
            number=i,
            installment_amount=amount,
            interest=interest,
            principal=principal_part,
            remaining_balance=balance,
        ))
    return schedule


def preview_installments(total_amount, down_payment, periods, annual_rate, agreement_date):
    """
    Schedule for a prospective sale, with due dates, without storing anything.
    returns: (Schedule, list of dicts for each installment)
    """
    if down_payment < 0:
        raise InvalidArgumentError("down payment cannot be negative")
    if down_payment > total_amount:
        raise InvalidArgumentError("down payment cannot exceed the total amount")
    principal = total_amount - down_payment
    if principal <= 0:
        raise InvalidArgumentError("nothing left to finance after the down payment")
    parse_date(agreement_date)

    schedule = compute_schedule(principal, annual_rate, periods)
    rows = []
    for row in schedule.rows:
        rows.append({
            "installment": row.number,
            "due_date": installment_due_date(agreement_date, row.number),
            "payment": row.installment_amount,
            "interest": row.interest,
            "principal": row.principal,
            "remaining": row.remaining_balance,
        })
    return schedule, rows
