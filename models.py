# models.py
from sqlalchemy import (
    Column, Integer, BigInteger, String, Numeric, ForeignKey, DateTime, Enum, UniqueConstraint
)
from sqlalchemy.orm import relationship, declarative_base
import enum
import datetime

Base = declarative_base()


def utcnow():
    # naive UTC, the form SQLite hands back
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class AgreementStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InstallmentStatus(enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    # derived at read time, never stored
    OVERDUE = "overdue"


class Agreement(Base):
    __tablename__ = "installment_agreements"
    id = Column(Integer, primary_key=True)
    order_id = Column(String, unique=True, index=True, nullable=False)
    customer_id = Column(String, index=True, nullable=False)

    total_amount = Column(BigInteger, nullable=False)
    down_payment = Column(BigInteger, nullable=False, default=0)
    principal_amount = Column(BigInteger, nullable=False)
    installment_count = Column(Integer, nullable=False)
    annual_rate = Column(Numeric(9, 4), nullable=False)
    monthly_rate = Column(Numeric(12, 6), nullable=False)  # percent
    installment_amount = Column(BigInteger, nullable=False)
    total_interest = Column(BigInteger, nullable=False)
    total_payment = Column(BigInteger, nullable=False)
    guarantee_type = Column(String)
    agreement_date = Column(String(10))  # jalali YYYY/MM/DD

    status = Column(Enum(AgreementStatus), nullable=False, default=AgreementStatus.PENDING, index=True)
    created_by = Column(String)
    approved_by = Column(String, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    cancelled_by = Column(String, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    version = Column(Integer, nullable=False, default=1)

    installments = relationship(
        "Installment",
        back_populates="agreement",
        cascade="all, delete-orphan",
        order_by="Installment.installment_number",
    )

    # bumped by every lifecycle write, see agreements._touch
    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    def __repr__(self):
        return f"<Agreement #{self.id} order={self.order_id} status={getattr(self.status, 'name', None)}>"


class Installment(Base):
    __tablename__ = "installments"
    __table_args__ = (UniqueConstraint("agreement_id", "installment_number"),)
    id = Column(Integer, primary_key=True)
    agreement_id = Column(Integer, ForeignKey("installment_agreements.id"), index=True, nullable=False)
    installment_number = Column(Integer, nullable=False)
    due_date = Column(String(10))  # jalali YYYY/MM/DD
    installment_amount = Column(BigInteger, nullable=False)
    interest_amount = Column(BigInteger, nullable=False)
    principal_amount = Column(BigInteger, nullable=False)
    remaining_balance = Column(BigInteger, nullable=False)
    status = Column(Enum(InstallmentStatus), nullable=False, default=InstallmentStatus.PENDING)

    paid_at = Column(DateTime, nullable=True)
    paid_by = Column(String, nullable=True)
    paid_amount = Column(BigInteger, nullable=True)
    payment_date = Column(String(10), nullable=True)  # jalali
    notes = Column(String, nullable=True)

    agreement = relationship("Agreement", back_populates="installments")

    @property
    def is_paid(self):
        return self.status == InstallmentStatus.PAID

    def __repr__(self):
        return f"<Installment #{self.id} {self.installment_number}/{self.agreement_id} {getattr(self.status, 'name', None)}>"
