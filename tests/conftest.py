"""Pytest configuration and fixtures."""

import datetime
import itertools

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from agreements import create_agreement
from models import Base


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def now() -> datetime.datetime:
    """Fixed 'current time' (naive UTC)."""
    return datetime.datetime(2024, 4, 3, 10, 30, 0)


@pytest.fixture
def clock(now):
    return lambda: now


@pytest.fixture
def make_agreement(session, clock):
    """Create agreements with sensible defaults; returns the new id."""
    counter = itertools.count(1)

    def _make(**overrides) -> int:
        params = dict(
            order_id=f"order-{next(counter):03d}",
            customer_id="cust-001",
            total_amount=15_000_000,
            down_payment=3_000_000,
            installment_count=12,
            annual_rate=36,
            guarantee_type="cheque",
            agreement_date="1403/01/15",
            created_by="user-admin",
            clock=clock,
        )
        params.update(overrides)
        return create_agreement(session, **params)

    return _make
