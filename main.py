# main.py
import argparse
import logging
import sys

from config import LOG_LEVEL
from db import init_db, get_session
from logic import preview_installments
from agreements import effective_status
from backfill_service import backfill_due_dates
from calendar_helper import today
from display import (
    agreement_status_label,
    error_message,
    format_currency,
    installment_status_label,
)
from exceptions import InstallmentError, NotFoundError
import queries

logging.basicConfig(level=getattr(logging, LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)


def agreement_lines(view, today_j):
    agreement = view.agreement
    lines = [
        f"💼 قرارداد اقساطی #{agreement.id} (سفارش {agreement.order_id})",
        f"💰 مبلغ کل: {format_currency(agreement.total_amount)}",
        f"💵 پیش‌پرداخت: {format_currency(agreement.down_payment)}",
        f"🏦 اصل: {format_currency(agreement.principal_amount)}",
        f"📈 نرخ سالانه: {agreement.annual_rate}%",
        f"📅 تاریخ قرارداد: {agreement.agreement_date}",
        f"وضعیت: {agreement_status_label(agreement.status)}",
        "",
        "📊 لیست اقساط:",
    ]
    for inst in view.installments:
        status = installment_status_label(effective_status(inst, today_j))
        lines.append(
            f"قسط {inst.installment_number}: {format_currency(inst.installment_amount)} — "
            f"سود {format_currency(inst.interest_amount)} — اصل {format_currency(inst.principal_amount)} — "
            f"مانده {format_currency(inst.remaining_balance)} — تاریخ {inst.due_date} — {status}"
        )
    return lines


def cmd_init_db(args):
    init_db()
    logger.info("Database initialised")


def cmd_backfill(args):
    session = get_session()
    try:
        updated = backfill_due_dates(session, args.agreement)
    finally:
        session.close()
    print(f"{updated} قسط به‌روزرسانی شد.")


def cmd_show(args):
    session = get_session()
    try:
        view = queries.get_with_installments(session, args.agreement)
        if view is None:
            raise NotFoundError(f"agreement {args.agreement} not found")
        print("\n".join(agreement_lines(view, today())))
    finally:
        session.close()


def cmd_list(args):
    session = get_session()
    try:
        if args.status:
            agreements = queries.get_by_status(session, args.status)
        else:
            agreements = queries.list_agreements(session)
        for a in agreements:
            print(
                f"🔸 {a.id}. سفارش {a.order_id} — مشتری {a.customer_id} — "
                f"{a.installment_count} × {format_currency(a.installment_amount)} — "
                f"{agreement_status_label(a.status)}"
            )
    finally:
        session.close()


def cmd_unpaid(args):
    session = get_session()
    try:
        rows = queries.get_unpaid_by_customer(session, args.customer, today())
        if not rows:
            print("هیچ قسط پرداخت‌نشده‌ای وجود ندارد.")
        for r in rows:
            print(
                f"سفارش {r.order_id} — قسط {r.installment_number}: "
                f"{format_currency(r.installment_amount)} — {r.due_date} — "
                f"{installment_status_label(r.status)}"
            )
    finally:
        session.close()


def cmd_preview(args):
    schedule, rows = preview_installments(
        args.total, args.down, args.count, args.rate, args.date
    )
    print(f"مبلغ هر قسط: {format_currency(schedule.installment_amount)}")
    print(f"جمع سود: {format_currency(schedule.total_interest)}")
    print(f"جمع پرداخت: {format_currency(schedule.total_payment)}")
    for row in rows:
        print(
            f"{row['installment']:>3} | {row['due_date']} | {format_currency(row['payment'])} | "
            f"{format_currency(row['interest'])} | {format_currency(row['principal'])} | "
            f"{format_currency(row['remaining'])}"
        )


def build_parser():
    parser = argparse.ArgumentParser(description="Installment agreement maintenance")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init-db", help="create tables")
    p.set_defaults(func=cmd_init_db)

    p = sub.add_parser("backfill", help="recompute installment due dates")
    p.add_argument("--agreement", type=int, default=None, help="limit to one agreement id")
    p.set_defaults(func=cmd_backfill)

    p = sub.add_parser("show", help="show an agreement with its installments")
    p.add_argument("agreement", type=int)
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("list", help="list agreements, newest first")
    p.add_argument("--status", choices=["pending", "approved", "completed", "cancelled"])
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("unpaid", help="unpaid installments of a customer")
    p.add_argument("customer")
    p.set_defaults(func=cmd_unpaid)

    p = sub.add_parser("preview", help="compute a schedule without saving it")
    p.add_argument("--total", type=int, required=True)
    p.add_argument("--down", type=int, default=0)
    p.add_argument("--count", type=int, required=True)
    p.add_argument("--rate", type=str, required=True, help="annual rate in percent")
    p.add_argument("--date", required=True, help="jalali agreement date, e.g. 1403/01/15")
    p.set_defaults(func=cmd_preview)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except InstallmentError as e:
        logger.error("%s failed: %s", args.command, e)
        print(f"⚠️ {error_message(e)}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
