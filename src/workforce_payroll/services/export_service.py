"""CSV exports and the employee payslip view."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_payroll.config import Settings, get_settings
from workforce_payroll.errors import NotFoundError, PayrollPermissionError
from workforce_payroll.models import PayrollEntry, PayrollPeriod
from workforce_payroll.models.base import as_utc, utcnow
from workforce_payroll.services.capabilities import PayrollCapabilities
from workforce_payroll.services.locum_service import LocumPayoutTracker
from workforce_payroll.services.period_service import PAYABLE_ENTRY
from workforce_payroll.services.state_machine import PeriodOperation, PeriodStateMachine

logger = logging.getLogger(__name__)

CENTS = Decimal(100)
TWO_PLACES = Decimal("0.01")

PAYROLL_CSV_HEADER = [
    "Staff Name",
    "Paid Units",
    "Month Units",
    "Payable Base",
    "Allowances",
    "Gross Pay",
    "PAYE",
    "NSSF",
    "SHIF",
    "Housing Levy",
    "Total Deductions",
    "Net Pay",
    "Status",
]

LOCUM_CSV_HEADER = [
    "Date",
    "Shift Time",
    "Locum Name",
    "Role",
    "Location",
    "Rate",
    "Status",
    "Payable",
]


def format_money(cents: int) -> str:
    """Cents as a plain two-decimal string, without grouping separators."""
    return str((Decimal(cents) / CENTS).quantize(TWO_PLACES))


@dataclass(frozen=True)
class PayslipView:
    """What an employee may see of one entry."""

    entry_id: UUID
    available: bool
    available_at: datetime | None
    period_name: str
    entry: PayrollEntry | None = None


class ExportService:
    """Deterministic exports over finalized periods.

    Output is a pure function of the stored entries: rows are ordered by
    staff name then staff id, money uses two decimals and lines end in
    ``\\n``, so two exports of the same finalized period are byte-identical.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        capabilities: PayrollCapabilities | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.capabilities = capabilities or PayrollCapabilities.full_access()

    async def export_csv(self, period_id: UUID) -> str:
        """Export a finalized period's entries as CSV, one row per eligible staff member.

        Raises:
            PayrollPermissionError: period is not finalized or export is not permitted
        """
        period = await self._get_exportable_period(period_id)

        result = await self.session.execute(
            select(PayrollEntry)
            .where(PayrollEntry.period_id == period_id, PAYABLE_ENTRY)
            .order_by(PayrollEntry.staff_name, PayrollEntry.staff_id)
        )
        entries = result.scalars().all()

        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(PAYROLL_CSV_HEADER)
        for entry in entries:
            writer.writerow([
                entry.staff_name,
                entry.paid_units,
                entry.month_units,
                format_money(entry.payable_base_cents),
                format_money(entry.allowances_total_cents),
                format_money(entry.gross_cents),
                format_money(entry.paye_cents),
                format_money(entry.nssf_employee_cents),
                format_money(entry.shif_cents),
                format_money(entry.housing_levy_employee_cents),
                format_money(entry.deductions_total_cents),
                format_money(entry.net_pay_cents),
                "Paid" if entry.is_paid else "Pending",
            ])

        logger.info("Exported %s entries for period %s", len(entries), period.period_id)
        return output.getvalue()

    async def export_locums_csv(self, period_id: UUID) -> str:
        """Export locum payouts within a finalized period's date range."""
        await self._get_exportable_period(period_id)
        report = await LocumPayoutTracker(self.session, self.settings).payouts_for_period(
            period_id
        )

        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(LOCUM_CSV_HEADER)
        for payout in report.payouts:
            writer.writerow([
                payout.shift_date.isoformat(),
                payout.shift_time,
                payout.locum_name,
                payout.role or "",
                payout.location or "",
                format_money(payout.rate_cents),
                payout.status.value,
                format_money(payout.payable_cents),
            ])
        return output.getvalue()

    async def get_payslip(
        self,
        entry_id: UUID,
        staff_id: UUID | None = None,
        now: datetime | None = None,
    ) -> PayslipView:
        """Payslip for one entry, hidden until the visibility delay has passed.

        A staff_id restricts the lookup to that staff member's own entries.
        """
        result = await self.session.execute(
            select(PayrollEntry, PayrollPeriod)
            .join(PayrollPeriod, PayrollPeriod.period_id == PayrollEntry.period_id)
            .where(PayrollEntry.entry_id == entry_id)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFoundError("payroll entry", entry_id)
        entry, period = row
        if staff_id is not None and entry.staff_id != staff_id:
            raise NotFoundError("payroll entry", entry_id)
        return self._payslip_view(entry, period, now or utcnow())

    async def payslips_for_staff(
        self,
        staff_id: UUID,
        now: datetime | None = None,
    ) -> list[PayslipView]:
        """Visible payslips for a staff member, newest period first."""
        now = now or utcnow()
        result = await self.session.execute(
            select(PayrollEntry, PayrollPeriod)
            .join(PayrollPeriod, PayrollPeriod.period_id == PayrollEntry.period_id)
            .where(
                PayrollEntry.staff_id == staff_id,
                PayrollPeriod.is_finalized.is_(True),
            )
            .order_by(PayrollPeriod.start_date.desc(), PayrollPeriod.period_id)
        )
        views = [self._payslip_view(entry, period, now) for entry, period in result.all()]
        return [v for v in views if v.available]

    def visible_from(self, period: PayrollPeriod) -> datetime | None:
        if not period.is_finalized or period.finalized_at is None:
            return None
        delay = timedelta(minutes=self.settings.payslip_visibility_delay_minutes)
        return as_utc(period.finalized_at) + delay

    def _payslip_view(
        self, entry: PayrollEntry, period: PayrollPeriod, now: datetime
    ) -> PayslipView:
        available_at = self.visible_from(period)
        available = available_at is not None and as_utc(now) >= available_at
        return PayslipView(
            entry_id=entry.entry_id,
            available=available,
            available_at=available_at,
            period_name=period.name,
            entry=entry if available else None,
        )

    async def _get_exportable_period(self, period_id: UUID) -> PayrollPeriod:
        period = await self.session.get(PayrollPeriod, period_id, populate_existing=True)
        if period is None:
            raise NotFoundError("payroll period", period_id)
        if not PeriodStateMachine.is_allowed(period.status, PeriodOperation.EXPORT):
            logger.warning("Rejected export of period %s: not finalized", period_id)
            raise PayrollPermissionError(
                f"Payroll period {period_id} must be finalized before export"
            )
        self.capabilities.require("can_export")
        return period
