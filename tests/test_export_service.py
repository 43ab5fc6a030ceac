"""Service tests for CSV exports and the payslip view."""

from __future__ import annotations

import csv
import io
from datetime import date, timedelta

import pytest
import pytest_asyncio

from workforce_payroll.errors import NotFoundError, PayrollPermissionError
from workforce_payroll.models import Shift, ShiftAssignment, Staff
from workforce_payroll.models.base import as_utc
from workforce_payroll.services.capabilities import PayrollCapabilities
from workforce_payroll.services.export_service import (
    LOCUM_CSV_HEADER,
    PAYROLL_CSV_HEADER,
    ExportService,
    format_money,
)
from workforce_payroll.services.locum_service import LocumPayoutTracker
from workforce_payroll.services.period_service import PayrollPeriodService

from .conftest import ORG_ID

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def finalized(session, settings, staff, period):
    """Generated and finalized period with one paid entry and an allowance."""
    service = PayrollPeriodService(session, settings)
    await service.generate_entries(period.period_id)
    entries = {e.staff_name: e for e in await service.get_entries(period.period_id)}
    await service.add_allowance(entries["Carol Muthoni"].entry_id, 1_234_567, "Relocation")
    await service.mark_paid(entries["Alice Wanjiru"].entry_id, actor="finance")
    return await service.finalize(period.period_id, actor="director")


def parse_csv(content: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(content)))


class TestPayrollCsv:
    """Deterministic CSV export."""

    async def test_header_and_rows(self, session, settings, finalized):
        content = await ExportService(session, settings).export_csv(finalized.period_id)

        rows = parse_csv(content)
        assert rows[0] == PAYROLL_CSV_HEADER
        assert [r[0] for r in rows[1:]] == ["Alice Wanjiru", "Brian Otieno", "Carol Muthoni"]

        alice = rows[1]
        assert alice[5] == "50000.00"
        assert alice[6] == "7383.35"
        assert alice[10] == "10588.35"
        assert alice[11] == "39411.65"
        assert alice[12] == "Paid"
        assert rows[2][12] == "Pending"

    async def test_money_has_no_grouping(self, session, settings, finalized):
        content = await ExportService(session, settings).export_csv(finalized.period_id)

        carol = parse_csv(content)[3]
        assert carol[4] == "12345.67"
        assert "," not in "".join(carol[3:12])

    async def test_line_endings(self, session, settings, finalized):
        content = await ExportService(session, settings).export_csv(finalized.period_id)

        assert "\r" not in content
        assert content.endswith("\n")
        assert content.count("\n") == 4

    async def test_byte_identical_across_calls(self, session, settings, finalized):
        exporter = ExportService(session, settings)

        first = await exporter.export_csv(finalized.period_id)
        await PayrollPeriodService(session, settings).archive(finalized.period_id)
        second = await exporter.export_csv(finalized.period_id)

        assert first.encode() == second.encode()

    async def test_rows_ordered_by_name_then_id(self, session, settings, period):
        twins = [
            Staff(
                organization_id=ORG_ID,
                full_name="Sam Njoroge",
                pay_method="Fixed",
                monthly_salary_cents=salary,
            )
            for salary in (1_000_000, 2_000_000)
        ]
        session.add_all(twins)
        await session.flush()
        service = PayrollPeriodService(session, settings)
        await service.generate_entries(period.period_id)
        await service.finalize(period.period_id, actor="director")

        rows = parse_csv(await ExportService(session, settings).export_csv(period.period_id))

        expected = [
            format_money(e.gross_cents)
            for e in sorted(await service.get_entries(period.period_id), key=lambda e: str(e.staff_id))
        ]
        assert [r[5] for r in rows[1:]] == expected

    async def test_draft_export_refused(self, session, settings, staff, period):
        await PayrollPeriodService(session, settings).generate_entries(period.period_id)

        with pytest.raises(PermissionError):
            await ExportService(session, settings).export_csv(period.period_id)

    async def test_export_capability_required(self, session, settings, finalized):
        exporter = ExportService(
            session, settings, PayrollCapabilities.from_organization("active", False)
        )

        with pytest.raises(PayrollPermissionError):
            await exporter.export_csv(finalized.period_id)

    async def test_ineligible_staff_not_exported(self, session, settings, staff, period):
        service = PayrollPeriodService(session, settings)
        await service.generate_entries(period.period_id)
        staff["carol"].staff_status = "Inactive"
        await session.flush()
        await service.generate_entries(period.period_id)
        await service.finalize(period.period_id, actor="director")

        rows = parse_csv(await ExportService(session, settings).export_csv(period.period_id))

        assert [r[0] for r in rows[1:]] == ["Alice Wanjiru", "Brian Otieno"]


class TestLocumCsv:
    async def test_locum_export(self, session, settings, finalized):
        shift = Shift(
            organization_id=ORG_ID,
            shift_date=date(2025, 6, 14),
            start_time="08:00",
            end_time="16:00",
            location_name="Westlands Clinic",
            role_required="Nurse",
        )
        assignment = ShiftAssignment(
            shift=shift, is_locum=True, locum_name="Grace Achieng", rate_cents=450_000
        )
        session.add_all([shift, assignment])
        await session.flush()
        tracker = LocumPayoutTracker(session, settings)
        await tracker.record_status(assignment.assignment_id, "Worked")

        exporter = ExportService(session, settings)
        rows = parse_csv(await exporter.export_locums_csv(finalized.period_id))

        assert rows[0] == LOCUM_CSV_HEADER
        assert rows[1] == [
            "2025-06-14",
            "08:00-16:00",
            "Grace Achieng",
            "Nurse",
            "Westlands Clinic",
            "4500.00",
            "Worked",
            "4500.00",
        ]

    async def test_locum_export_requires_finalized(self, session, settings, period):
        with pytest.raises(PayrollPermissionError):
            await ExportService(session, settings).export_locums_csv(period.period_id)


class TestPayslip:
    """Payslips appear only after the visibility delay."""

    async def test_hidden_before_delay(self, session, settings, finalized):
        exporter = ExportService(session, settings)
        entry = (await PayrollPeriodService(session, settings).get_entries(finalized.period_id))[0]
        finalized_at = as_utc(finalized.finalized_at)

        view = await exporter.get_payslip(entry.entry_id, now=finalized_at + timedelta(minutes=30))

        assert view.available is False
        assert view.entry is None
        assert view.available_at == finalized_at + timedelta(minutes=60)

    async def test_visible_after_delay(self, session, settings, finalized):
        exporter = ExportService(session, settings)
        entry = (await PayrollPeriodService(session, settings).get_entries(finalized.period_id))[0]
        now = as_utc(finalized.finalized_at) + timedelta(minutes=60)

        view = await exporter.get_payslip(entry.entry_id, now=now)

        assert view.available is True
        assert view.entry.entry_id == entry.entry_id
        assert view.period_name == "June 2025"

    async def test_draft_never_visible(self, session, settings, staff, period):
        service = PayrollPeriodService(session, settings)
        await service.generate_entries(period.period_id)
        entry = (await service.get_entries(period.period_id))[0]

        view = await ExportService(session, settings).get_payslip(entry.entry_id)

        assert view.available is False
        assert view.available_at is None

    async def test_other_staff_cannot_see_payslip(self, session, settings, staff, finalized):
        entries = await PayrollPeriodService(session, settings).get_entries(finalized.period_id)
        alice_entry = next(e for e in entries if e.staff_id == staff["alice"].staff_id)

        with pytest.raises(NotFoundError):
            await ExportService(session, settings).get_payslip(
                alice_entry.entry_id, staff_id=staff["brian"].staff_id
            )

    async def test_payslips_for_staff(self, session, settings, staff, finalized):
        exporter = ExportService(session, settings)
        later = as_utc(finalized.finalized_at) + timedelta(hours=2)

        assert await exporter.payslips_for_staff(staff["alice"].staff_id, now=as_utc(finalized.finalized_at)) == []
        views = await exporter.payslips_for_staff(staff["alice"].staff_id, now=later)
        assert len(views) == 1
        assert views[0].entry.staff_id == staff["alice"].staff_id
