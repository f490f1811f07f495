# display.py
# Boundary translation: persian labels and messages for statuses and errors.
# Business code compares enums only; strings from here are for people.
from models import AgreementStatus, InstallmentStatus
from calendar_helper import to_persian_digits
from exceptions import (
    AlreadyPaidError,
    ConcurrencyConflictError,
    InsufficientPaymentError,
    InstallmentError,
    InvalidArgumentError,
    InvalidDateError,
    InvalidStateError,
    NotFoundError,
)

AGREEMENT_STATUS_LABELS = {
    AgreementStatus.PENDING: "در انتظار پرداخت",
    AgreementStatus.APPROVED: "تایید شده",
    AgreementStatus.COMPLETED: "تکمیل شده",
    AgreementStatus.CANCELLED: "لغو شده",
}

INSTALLMENT_STATUS_LABELS = {
    InstallmentStatus.PENDING: "در انتظار پرداخت",
    InstallmentStatus.PAID: "پرداخت شده",
    InstallmentStatus.OVERDUE: "سررسید گذشته",
}

# most specific class first
ERROR_MESSAGES = [
    (AlreadyPaidError, "این قسط قبلاً پرداخت شده است."),
    (InsufficientPaymentError, "مبلغ پرداختی کمتر از مبلغ قسط است."),
    (ConcurrencyConflictError, "اطلاعات همزمان تغییر کرد، لطفاً دوباره تلاش کنید."),
    (InvalidDateError, "تاریخ نامعتبر است."),
    (NotFoundError, "مورد پیدا نشد."),
    (InvalidStateError, "این عملیات در وضعیت فعلی قرارداد مجاز نیست."),
    (InvalidArgumentError, "مقادیر واردشده نامعتبر است."),
    (InstallmentError, "خطا در پردازش اقساط."),
]


def agreement_status_label(status):
    return AGREEMENT_STATUS_LABELS[status]


def installment_status_label(status):
    return INSTALLMENT_STATUS_LABELS[status]


def error_message(exc):
    for cls, message in ERROR_MESSAGES:
        if isinstance(exc, cls):
            return message
    return "خطای غیرمنتظره رخ داد."


def format_currency(n):
    return f"{int(n):,}"


def format_rials(n, persian=False):
    text = f"{format_currency(n)} ریال"
    return to_persian_digits(text) if persian else text


def format_date_for_display(jalali_str):
    return to_persian_digits(jalali_str) if jalali_str else "—"
