"""Pytest fixtures for workforce payroll tests."""

from __future__ import annotations

from datetime import date
from typing import AsyncGenerator
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from workforce_payroll.calculators.types import RatesConfiguration
from workforce_payroll.calculators.validation import parse_rates
from workforce_payroll.config import Settings
from workforce_payroll.models import Base, PayrollPeriod, Staff
from workforce_payroll.services.rates_service import DEFAULT_KENYA_RULES

# Use in-memory SQLite for tests (with async support).
# StaticPool keeps one connection so every session sees the same database.
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ORG_ID = UUID("00000000-0000-0000-0000-00000000a001")
OTHER_ORG_ID = UUID("00000000-0000-0000-0000-00000000a002")


def make_settings(**overrides) -> Settings:
    """Settings for tests, independent of the process environment."""
    values = dict(
        database_url=TEST_DATABASE_URL,
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="DEBUG",
        standard_workday_hours=8,
        payslip_visibility_delay_minutes=60,
        open_shift_policy="standard_day",
        lock_locums_with_period=False,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def kenya_rates() -> RatesConfiguration:
    """Default Kenya rules as the engine sees them."""
    return parse_rates(DEFAULT_KENYA_RULES, version=1, effective_from=date(2024, 1, 1))


@pytest_asyncio.fixture
async def engine():
    """Create a fresh test database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def staff(session: AsyncSession) -> dict[str, Staff]:
    """Three salaried staff members and an unpaid owner."""
    alice = Staff(
        staff_id=uuid4(),
        organization_id=ORG_ID,
        full_name="Alice Wanjiru",
        system_role="EMPLOYEE",
        staff_status="Active",
        pay_method="Fixed",
        monthly_salary_cents=5_000_000,
        hourly_rate_cents=0,
    )
    brian = Staff(
        staff_id=uuid4(),
        organization_id=ORG_ID,
        full_name="Brian Otieno",
        system_role="EMPLOYEE",
        staff_status="Active",
        pay_method="Prorated",
        monthly_salary_cents=6_000_000,
        hourly_rate_cents=0,
    )
    carol = Staff(
        staff_id=uuid4(),
        organization_id=ORG_ID,
        full_name="Carol Muthoni",
        system_role="ADMIN",
        staff_status="Active",
        pay_method="Fixed",
        monthly_salary_cents=3_000_000,
        hourly_rate_cents=0,
    )
    owner = Staff(
        staff_id=uuid4(),
        organization_id=ORG_ID,
        full_name="Owner Kamau",
        system_role="OWNER",
        staff_status="Active",
        pay_method=None,
        monthly_salary_cents=None,
        hourly_rate_cents=None,
    )
    session.add_all([alice, brian, carol, owner])
    await session.flush()
    return {"alice": alice, "brian": brian, "carol": carol, "owner": owner}


@pytest_asyncio.fixture
async def period(session: AsyncSession) -> PayrollPeriod:
    """A 30-day draft period in June 2025."""
    period = PayrollPeriod(
        period_id=uuid4(),
        organization_id=ORG_ID,
        name="June 2025",
        start_date=date(2025, 6, 1),
        end_date=date(2025, 6, 30),
        is_finalized=False,
        is_archived=False,
        version=1,
    )
    session.add(period)
    await session.flush()
    return period
