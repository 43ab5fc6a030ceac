"""Service tests for the payroll period lifecycle."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_payroll.errors import (
    ConcurrencyConflictError,
    ImmutableStateError,
    NotFoundError,
    PayrollPermissionError,
    ValidationError,
)
from workforce_payroll.models import (
    AttendanceRecord,
    AuditEvent,
    LeaveRecord,
    PayrollEntry,
    PayrollPeriod,
    Staff,
)
from workforce_payroll.services.capabilities import PayrollCapabilities
from workforce_payroll.services.period_service import (
    INELIGIBLE_REVIEW_REASON,
    PayrollPeriodService,
)
from workforce_payroll.services.state_machine import PeriodOperation

from .conftest import ORG_ID, OTHER_ORG_ID

pytestmark = pytest.mark.asyncio


async def add_workdays(session: AsyncSession, staff: Staff, start: date, count: int) -> None:
    session.add_all(
        [
            AttendanceRecord(
                organization_id=staff.organization_id,
                staff_id=staff.staff_id,
                work_date=start + timedelta(days=i),
                total_hours=Decimal("8"),
                status="Present",
            )
            for i in range(count)
        ]
    )
    await session.flush()


@pytest.fixture
def service(session, settings) -> PayrollPeriodService:
    return PayrollPeriodService(session, settings)


@pytest_asyncio.fixture
async def generated(session, service, staff, period) -> dict[str, PayrollEntry]:
    """Period with Brian on 18 worked days and 2 days of paid leave."""
    await add_workdays(session, staff["brian"], period.start_date, 18)
    session.add(
        LeaveRecord(
            organization_id=ORG_ID,
            staff_id=staff["brian"].staff_id,
            start_date=date(2025, 6, 19),
            end_date=date(2025, 6, 20),
            is_paid=True,
            status="Approved",
        )
    )
    await session.flush()

    await service.generate_entries(period.period_id, actor="hr@example.com")
    entries = await service.get_entries(period.period_id)
    by_staff = {e.staff_id: e for e in entries}
    return {name: by_staff[s.staff_id] for name, s in staff.items() if s.staff_id in by_staff}


async def audit_actions(session: AsyncSession, period_id) -> list[str]:
    result = await session.execute(
        select(AuditEvent.action).where(AuditEvent.entity_id == period_id)
    )
    return list(result.scalars().all())


class TestPeriodCrud:
    """Create, read and list periods."""

    async def test_create_period(self, session, service):
        period = await service.create_period(
            ORG_ID, "July 2025", "2025-07-01", "2025-07-31", actor="hr@example.com"
        )

        assert period.status == "draft"
        assert period.version == 1
        assert period.month_units == 31
        assert await audit_actions(session, period.period_id) == ["created"]

    async def test_create_period_rejects_reversed_dates(self, service):
        with pytest.raises(ValidationError):
            await service.create_period(ORG_ID, "Bad", date(2025, 7, 31), date(2025, 7, 1))

    async def test_create_period_requires_name(self, service):
        with pytest.raises(ValidationError):
            await service.create_period(ORG_ID, "  ", date(2025, 7, 1), date(2025, 7, 31))

    async def test_create_period_requires_preview_capability(self, session, settings):
        service = PayrollPeriodService(
            session, settings, PayrollCapabilities.from_organization("expired", True)
        )

        with pytest.raises(PayrollPermissionError):
            await service.create_period(ORG_ID, "July", date(2025, 7, 1), date(2025, 7, 31))

    async def test_foreign_period_not_found(self, service, period):
        with pytest.raises(NotFoundError):
            await service.get_period(period.period_id, OTHER_ORG_ID)

    async def test_unknown_period_not_found(self, service):
        with pytest.raises(NotFoundError):
            await service.get_period(uuid4())


class TestGenerateEntries:
    """Idempotent entry generation."""

    async def test_one_entry_per_eligible_staff(self, generated, staff):
        """The unpaid owner is left out."""
        assert set(generated) == {"alice", "brian", "carol"}

    async def test_amounts(self, generated):
        alice = generated["alice"]
        assert alice.gross_cents == 5_000_000
        assert alice.paye_cents == 738_335
        assert alice.deductions_total_cents == 1_058_835
        assert alice.net_pay_cents == 3_941_165

        brian = generated["brian"]
        assert brian.worked_units == 18
        assert brian.paid_leave_units == 2
        assert brian.absent_units == 10
        assert brian.month_units == 30
        assert brian.payable_base_cents == 4_000_000
        assert brian.rates_version == 1

    async def test_entry_ids_are_deterministic(self, service, generated, period):
        brian = generated["brian"]

        assert brian.entry_id == service.engine.entry_id_for(period.period_id, brian.staff_id)

    async def test_regeneration_is_idempotent(self, session, service, generated, period):
        before = {e.entry_id: e.financial_snapshot() for e in await service.get_entries(period.period_id)}
        version_before = (await service.get_period(period.period_id)).version

        result = await service.generate_entries(period.period_id)

        after = {e.entry_id: e.financial_snapshot() for e in await service.get_entries(period.period_id)}
        assert result.created == 0
        assert result.updated == 0
        assert result.unchanged == 3
        assert after == before
        assert (await service.get_period(period.period_id)).version == version_before

    async def test_regeneration_keeps_allowances_and_paid_stamp(
        self, session, service, generated, staff, period
    ):
        await service.add_allowance(generated["alice"].entry_id, 500_000, "Transport", actor="hr")
        await service.mark_paid(generated["brian"].entry_id, actor="finance")
        await add_workdays(session, staff["brian"], date(2025, 6, 21), 5)

        result = await service.generate_entries(period.period_id)

        alice = await service.get_entry(generated["alice"].entry_id)
        brian = await service.get_entry(generated["brian"].entry_id)
        assert result.updated == 1
        assert result.unchanged == 2
        assert alice.allowances == [{"amount_cents": 500_000, "notes": "Transport"}]
        assert alice.gross_cents == 5_500_000
        assert brian.worked_units == 23
        assert brian.is_paid is True
        assert brian.paid_by == "finance"

    async def test_new_staff_added_on_regeneration(self, session, service, generated, period):
        session.add(
            Staff(
                organization_id=ORG_ID,
                full_name="Dan Kiprono",
                pay_method="Fixed",
                monthly_salary_cents=2_000_000,
            )
        )
        await session.flush()

        result = await service.generate_entries(period.period_id)

        assert result.created == 1
        assert len(await service.get_entries(period.period_id)) == 4

    async def test_ineligible_staff_flagged_not_deleted(
        self, session, service, generated, staff, period
    ):
        staff["carol"].staff_status = "Inactive"
        await session.flush()

        result = await service.generate_entries(period.period_id)

        carol = await service.get_entry(generated["carol"].entry_id)
        assert result.flagged == 1
        assert carol.needs_review is True
        assert carol.review_reason == INELIGIBLE_REVIEW_REASON
        assert carol.gross_cents == 3_000_000

    async def test_ineligible_entries_excluded_from_totals_and_payout(
        self, session, service, generated, staff, period
    ):
        staff["carol"].staff_status = "Inactive"
        await session.flush()
        await service.generate_entries(period.period_id)

        summary = await service.period_summary(period.period_id)
        marked = await service.mark_all_paid(period.period_id, actor="finance")

        carol = await service.get_entry(generated["carol"].entry_id)
        assert summary.entry_count == 2
        assert summary.total_gross_cents == (
            generated["alice"].gross_cents + generated["brian"].gross_cents
        )
        assert marked == 2
        assert carol.is_paid is False

    async def test_owner_with_hourly_rate_only_is_included(self, session, service, staff, period):
        staff["owner"].pay_method = "Fixed"
        staff["owner"].hourly_rate_cents = 50_000
        await session.flush()

        result = await service.generate_entries(period.period_id)

        owner = next(
            e for e in await service.get_entries(period.period_id)
            if e.staff_id == staff["owner"].staff_id
        )
        assert result.created == 4
        assert owner.monthly_salary_cents == 0
        assert owner.gross_cents == 0
        assert owner.net_pay_cents == 0

    async def test_allowance_committed_during_regeneration_conflicts(
        self, session, session_factory, settings, service, generated, staff, period, monkeypatch
    ):
        """A concurrent allowance is never overwritten with totals computed without it."""
        alice_id = generated["alice"].entry_id
        period_id = period.period_id
        staff["alice"].monthly_salary_cents = 6_000_000
        await session.commit()

        read_entries = service.get_entries

        async def read_then_add_allowance_elsewhere(requested_period_id):
            entries = await read_entries(requested_period_id)
            async with session_factory() as other:
                await PayrollPeriodService(other, settings).add_allowance(
                    alice_id, 100_000, "Meals", actor="hr"
                )
                await other.commit()
            return entries

        monkeypatch.setattr(service, "get_entries", read_then_add_allowance_elsewhere)

        with pytest.raises(ConcurrencyConflictError):
            await service.generate_entries(period_id)
        await session.rollback()

        retry = PayrollPeriodService(session, settings)
        alice = await retry.get_entry(alice_id)
        assert alice.allowances_total_cents == 100_000
        assert alice.gross_cents == alice.payable_base_cents + alice.allowances_total_cents

        await retry.generate_entries(period_id)

        alice = await retry.get_entry(alice_id)
        assert alice.payable_base_cents == 6_000_000
        assert alice.gross_cents == 6_100_000

    async def test_invalid_profile_rejects_whole_run(self, session, service, staff, period):
        session.add(
            Staff(
                organization_id=ORG_ID,
                full_name="No Profile",
                system_role="EMPLOYEE",
                pay_method=None,
                monthly_salary_cents=None,
            )
        )
        await session.flush()

        with pytest.raises(ValidationError):
            await service.generate_entries(period.period_id)

        assert await service.get_entries(period.period_id) == []

    async def test_generation_audited(self, session, generated, period):
        assert await audit_actions(session, period.period_id) == ["entries_generated"]

    async def test_generation_requires_preview_capability(self, session, settings, staff, period):
        service = PayrollPeriodService(
            session, settings, PayrollCapabilities.from_organization("cancelled", False)
        )

        with pytest.raises(PayrollPermissionError):
            await service.generate_entries(period.period_id)


class TestAllowances:
    """Draft-only allowance edits recompute the entry."""

    async def test_add_allowance_reprices(self, service, generated):
        entry = generated["alice"]

        updated = await service.add_allowance(entry.entry_id, 500_000, "Transport", actor="hr")

        assert updated.allowances_total_cents == 500_000
        assert updated.gross_cents == 5_500_000
        assert updated.net_pay_cents == updated.gross_cents - updated.deductions_total_cents
        assert updated.version == 2

    async def test_edit_and_delete(self, service, generated):
        entry_id = generated["carol"].entry_id
        await service.add_allowance(entry_id, 100_000, "Meals")
        await service.add_allowance(entry_id, 200_000, "Airtime")

        edited = await service.edit_allowance(entry_id, 0, 150_000, "Meals (revised)")
        assert edited.allowances_total_cents == 350_000

        deleted = await service.delete_allowance(entry_id, 1)
        assert deleted.allowances == [{"amount_cents": 150_000, "notes": "Meals (revised)"}]
        assert deleted.gross_cents == 3_150_000

    async def test_bad_index(self, service, generated):
        with pytest.raises(NotFoundError):
            await service.edit_allowance(generated["alice"].entry_id, 3, 100)

    async def test_bad_amount_leaves_entry_untouched(self, service, generated):
        entry_id = generated["alice"].entry_id
        before = (await service.get_entry(entry_id)).financial_snapshot()

        with pytest.raises(ValidationError):
            await service.add_allowance(entry_id, -500)

        assert (await service.get_entry(entry_id)).financial_snapshot() == before

    async def test_stale_entry_version_conflicts(self, session, service, generated):
        entry = await service.get_entry(generated["alice"].entry_id)
        await session.execute(
            update(PayrollEntry)
            .where(PayrollEntry.entry_id == entry.entry_id)
            .values(version=PayrollEntry.version + 1)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(ConcurrencyConflictError):
            await service._conditional_entry_update(
                entry, PeriodOperation.MARK_PAID, {"is_paid": True}
            )


class TestPaidToggles:
    async def test_mark_and_unmark(self, service, generated):
        entry_id = generated["alice"].entry_id

        marked = await service.mark_paid(entry_id, actor="finance")
        assert marked.is_paid is True
        assert marked.paid_by == "finance"
        assert (await service.get_entry(entry_id)).is_paid is True

        unmarked = await service.unmark_paid(entry_id, actor="auditor")
        entry = await service.get_entry(entry_id)
        assert unmarked.is_paid is False
        assert entry.is_paid is False
        assert entry.paid_by == "auditor"

    async def test_mark_all_paid(self, service, generated, period):
        await service.mark_paid(generated["alice"].entry_id, actor="finance")

        assert await service.mark_all_paid(period.period_id, actor="finance") == 2
        assert await service.mark_all_paid(period.period_id, actor="finance") == 0
        assert all(e.is_paid for e in await service.get_entries(period.period_id))

    async def test_payout_capability_required(self, session, settings, generated, period):
        service = PayrollPeriodService(
            session, settings, PayrollCapabilities.from_organization("trial", False)
        )

        with pytest.raises(PayrollPermissionError):
            await service.mark_paid(generated["alice"].entry_id, actor="finance")
        with pytest.raises(PayrollPermissionError):
            await service.mark_all_paid(period.period_id, actor="finance")


class TestFinalize:
    """One-way compare-and-swap lock."""

    async def test_finalize_stamps_actor_and_time(self, session, service, generated, period):
        version = (await service.get_period(period.period_id)).version

        finalized = await service.finalize(period.period_id, actor="director")

        assert finalized.is_finalized is True
        assert finalized.status == "finalized"
        assert finalized.finalized_by == "director"
        assert finalized.finalized_at is not None
        assert finalized.version == version + 1
        assert "finalized" in await audit_actions(session, period.period_id)

    async def test_double_finalize_conflicts(self, service, generated, period):
        await service.finalize(period.period_id, actor="director")

        with pytest.raises(ConcurrencyConflictError):
            await service.finalize(period.period_id, actor="someone-else")

        assert (await service.get_period(period.period_id)).finalized_by == "director"

    async def test_stale_version_conflicts(self, service, generated, period):
        with pytest.raises(ConcurrencyConflictError):
            await service.finalize(period.period_id, actor="director", expected_version=1)

        assert (await service.get_period(period.period_id)).is_finalized is False

    async def test_finalized_entries_are_immutable(self, service, generated, period):
        await service.add_allowance(generated["alice"].entry_id, 100_000, "Meals")
        await service.mark_paid(generated["brian"].entry_id, actor="finance")
        before = {e.entry_id: e.financial_snapshot() for e in await service.get_entries(period.period_id)}

        await service.finalize(period.period_id, actor="director")

        alice_id = generated["alice"].entry_id
        brian_id = generated["brian"].entry_id
        attempts = [
            service.generate_entries(period.period_id),
            service.add_allowance(alice_id, 100, "late"),
            service.edit_allowance(alice_id, 0, 100),
            service.delete_allowance(alice_id, 0),
            service.mark_paid(alice_id, actor="finance"),
            service.unmark_paid(brian_id, actor="finance"),
            service.mark_all_paid(period.period_id, actor="finance"),
        ]
        for attempt in attempts:
            with pytest.raises(ImmutableStateError):
                await attempt

        after = {e.entry_id: e.financial_snapshot() for e in await service.get_entries(period.period_id)}
        assert after == before

    async def test_stale_period_version_on_batch_write(self, service, generated, period):
        current = await service.get_period(period.period_id)

        with pytest.raises(ConcurrencyConflictError):
            await service._bump_period_version(
                current, current.version - 1, PeriodOperation.MARK_ALL_PAID
            )


class TestArchive:
    """Archive is orthogonal to finalize."""

    async def test_archive_round_trip(self, session, service, generated, period):
        await service.finalize(period.period_id, actor="director")
        before = {e.entry_id: e.financial_snapshot() for e in await service.get_entries(period.period_id)}

        archived = await service.archive(period.period_id, actor="hr")
        assert archived.is_archived is True
        assert archived.is_finalized is True
        assert await service.list_periods(ORG_ID) == []
        assert len(await service.list_periods(ORG_ID, include_archived=True)) == 1

        unarchived = await service.unarchive(period.period_id, actor="hr")
        assert unarchived.is_archived is False
        assert unarchived.archived_at is None
        assert [p.period_id for p in await service.list_periods(ORG_ID)] == [period.period_id]

        after = {e.entry_id: e.financial_snapshot() for e in await service.get_entries(period.period_id)}
        assert after == before
        actions = await audit_actions(session, period.period_id)
        assert actions.count("archived") == 1
        assert actions.count("unarchived") == 1

    async def test_archive_draft_keeps_it_editable(self, service, generated, period):
        await service.archive(period.period_id)

        updated = await service.add_allowance(generated["alice"].entry_id, 100, "ok")

        assert updated.allowances_total_cents == 100


class TestSummary:
    async def test_totals(self, service, generated, period):
        await service.mark_paid(generated["alice"].entry_id, actor="finance")
        entries = await service.get_entries(period.period_id)

        summary = await service.period_summary(period.period_id)

        assert summary.entry_count == 3
        assert summary.paid_count == 1
        assert summary.pending_count == 2
        assert summary.total_gross_cents == sum(e.gross_cents for e in entries)
        assert summary.total_net_cents == sum(e.net_pay_cents for e in entries)
        assert summary.total_deductions_cents == sum(e.deductions_total_cents for e in entries)
        assert summary.total_employer_contributions_cents == sum(
            e.nssf_employer_cents + e.housing_levy_employer_cents for e in entries
        )
        assert summary.needs_review_count == 0

    async def test_empty_period(self, service, period):
        summary = await service.period_summary(period.period_id)

        assert summary.entry_count == 0
        assert summary.total_net_cents == 0


async def test_period_model_covers(period: PayrollPeriod):
    assert period.covers(date(2025, 6, 15))
    assert not period.covers(date(2025, 7, 1))
