# backfill_service.py
# Recomputes installment due dates from each agreement's origin date.
# Run it again whenever the due-date arithmetic changes; unchanged rows are
# left alone, so a second run reports 0.
import logging
from sqlalchemy.orm import sessionmaker

from config import DB_URL
from db import make_engine
from models import Base, Agreement, Installment
from calendar_helper import installment_due_date

logger = logging.getLogger(__name__)


def get_session(db_url):
    engine = make_engine(db_url)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)()


def agreements_in_scope(session, agreement_id=None):
    query = session.query(Agreement)
    if agreement_id is not None:
        query = query.filter_by(id=agreement_id)
    return [a for a in query.order_by(Agreement.id).all() if a.agreement_date]


def repair_installments(session, agreement):
    """Patch due dates of one agreement's installments; only due_date is written."""
    updated = 0
    installments = (
        session.query(Installment)
        .filter_by(agreement_id=agreement.id)
        .order_by(Installment.installment_number)
        .all()
    )
    for inst in installments:
        due_date = installment_due_date(agreement.agreement_date, inst.installment_number)
        if due_date != inst.due_date:
            logger.debug(
                "Agreement %s installment %d: %s -> %s",
                agreement.id, inst.installment_number, inst.due_date, due_date,
            )
            inst.due_date = due_date
            updated += 1
    return updated


def backfill_due_dates(session, agreement_id=None):
    """
    agreement_id: limit the repair to one agreement (unknown id -> 0)
    returns: number of installments whose due date changed
    """
    updated = 0
    try:
        for agreement in agreements_in_scope(session, agreement_id):
            updated += repair_installments(session, agreement)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("Due-date backfill updated %d installment(s)", updated)
    return updated


def run_backfill(db_url=DB_URL, agreement_id=None):
    logger.info("Starting due-date backfill on %s", db_url)
    session = get_session(db_url)
    try:
        return backfill_due_dates(session, agreement_id)
    finally:
        session.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_backfill()
