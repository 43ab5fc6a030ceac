"""Payroll period service - main orchestrator for period operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_payroll.calculators.allowances import AllowanceLedger
from workforce_payroll.calculators.engine import PayrollEngine
from workforce_payroll.calculators.types import (
    EntryCalculation,
    LeaveStatus,
    PayMethod,
    RatesConfiguration,
    StaffPayProfile,
    UnitCounts,
)
from workforce_payroll.calculators.validation import (
    is_excluded_owner,
    parse_attendance,
    parse_leave,
    parse_staff_profile,
    validate_period_dates,
)
from workforce_payroll.config import Settings, get_settings
from workforce_payroll.errors import (
    ConcurrencyConflictError,
    ImmutableStateError,
    NotFoundError,
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
from workforce_payroll.models.base import utcnow
from workforce_payroll.services.capabilities import PayrollCapabilities
from workforce_payroll.services.rates_service import StatutoryRatesService
from workforce_payroll.services.state_machine import PeriodOperation, PeriodStateMachine

logger = logging.getLogger(__name__)

INELIGIBLE_REVIEW_REASON = "Staff member is no longer eligible for payroll"

# Entries of staff who left the payroll stay for review but are never paid out
PAYABLE_ENTRY = PayrollEntry.review_reason.is_distinct_from(INELIGIBLE_REVIEW_REASON)


@dataclass(frozen=True)
class PaidToggleAudit:
    """Signal emitted after a paid/unpaid toggle."""

    entry_id: UUID
    is_paid: bool
    paid_at: datetime
    paid_by: str | None


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of generating entries for a period."""

    period_id: UUID
    created: int
    updated: int
    unchanged: int
    flagged: int
    rates_version: int


@dataclass(frozen=True)
class PeriodSummary:
    """Totals over a period's entries, in cents."""

    period_id: UUID
    entry_count: int
    total_gross_cents: int
    total_deductions_cents: int
    total_net_cents: int
    total_employer_contributions_cents: int
    paid_count: int
    pending_count: int
    needs_review_count: int


class PayrollPeriodService:
    """Service for managing the payroll period lifecycle.

    Operations:
    - create_period: New draft period for an organization
    - generate_entries: Idempotently compute one entry per eligible staff member
    - add_allowance / edit_allowance / delete_allowance: Draft-only entry edits
    - mark_paid / unmark_paid / mark_all_paid: Draft-only paid toggles
    - finalize: Compare-and-swap draft → finalized
    - archive / unarchive: Orthogonal visibility flag, any state
    - period_summary: Totals for reporting

    Period-wide writes are guarded by the period's version token and
    per-entry writes by the entry's version token plus a check that the
    period is still draft, both via conditional UPDATE statements.
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
        self.engine = PayrollEngine(self.settings)
        self.rates_service = StatutoryRatesService(session)

    # ===== Reads =====

    async def get_period(
        self,
        period_id: UUID,
        organization_id: UUID | None = None,
    ) -> PayrollPeriod:
        """Load a period, raising NotFoundError if it is missing or foreign."""
        result = await self.session.execute(
            select(PayrollPeriod)
            .where(PayrollPeriod.period_id == period_id)
            .execution_options(populate_existing=True)
        )
        period = result.scalar_one_or_none()
        if period is None:
            raise NotFoundError("payroll period", period_id)
        if organization_id is not None and period.organization_id != organization_id:
            raise NotFoundError("payroll period", period_id)
        return period

    async def list_periods(
        self,
        organization_id: UUID,
        include_archived: bool = False,
    ) -> list[PayrollPeriod]:
        stmt = select(PayrollPeriod).where(PayrollPeriod.organization_id == organization_id)
        if not include_archived:
            stmt = stmt.where(PayrollPeriod.is_archived.is_(False))
        result = await self.session.execute(
            stmt.order_by(PayrollPeriod.start_date.desc(), PayrollPeriod.period_id)
        )
        return list(result.scalars().all())

    async def get_entries(self, period_id: UUID) -> list[PayrollEntry]:
        result = await self.session.execute(
            select(PayrollEntry)
            .where(PayrollEntry.period_id == period_id)
            .order_by(PayrollEntry.staff_name, PayrollEntry.staff_id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_entry(self, entry_id: UUID, period_id: UUID | None = None) -> PayrollEntry:
        result = await self.session.execute(
            select(PayrollEntry)
            .where(PayrollEntry.entry_id == entry_id)
            .execution_options(populate_existing=True)
        )
        entry = result.scalar_one_or_none()
        if entry is None or (period_id is not None and entry.period_id != period_id):
            raise NotFoundError("payroll entry", entry_id)
        return entry

    # ===== Period lifecycle =====

    async def create_period(
        self,
        organization_id: UUID,
        name: str,
        start_date: Any,
        end_date: Any,
        actor: str | None = None,
    ) -> PayrollPeriod:
        """Create a draft period."""
        self.capabilities.require("can_preview")

        name = (name or "").strip()
        if not name:
            raise ValidationError("period name is required", "name")
        start, end = validate_period_dates(start_date, end_date)

        period = PayrollPeriod(
            organization_id=organization_id,
            name=name,
            start_date=start,
            end_date=end,
            is_finalized=False,
            is_archived=False,
            version=1,
        )
        self.session.add(period)
        await self.session.flush()

        await self._record_audit(
            period,
            action="created",
            actor=actor,
            details={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )
        logger.info("Created payroll period %s (%s to %s)", period.period_id, start, end)
        return period

    async def generate_entries(
        self,
        period_id: UUID,
        actor: str | None = None,
    ) -> GenerationResult:
        """Compute entries for every eligible staff member.

        Idempotent: entry ids are derived from (period, staff), and an
        existing entry is only rewritten when its calculation hash changes.
        Allowances and the paid stamp survive regeneration. Any invalid
        staff profile rejects the whole call before anything is written.

        Raises:
            ConcurrencyConflictError: the period or an entry changed after it was read
        """
        self.capabilities.require("can_preview")
        period = await self.get_period(period_id)
        PeriodStateMachine.validate_mutation(period, PeriodOperation.GENERATE_ENTRIES)
        observed_version = period.version

        rates = await self.rates_service.get_current()
        profiles = await self._load_profiles(period.organization_id)
        staff_ids = [p.staff_id for p in profiles]
        attendance = await self._load_attendance(period, staff_ids)
        leave = await self._load_leave(period, staff_ids)
        existing = {e.staff_id: e for e in await self.get_entries(period_id)}

        plan: list[tuple[PayrollEntry | None, StaffPayProfile, EntryCalculation, str]] = []
        for profile in profiles:
            entry = existing.get(profile.staff_id)
            calc = self.engine.calculate_entry(
                profile,
                period.start_date,
                period.end_date,
                attendance.get(profile.staff_id, []),
                leave.get(profile.staff_id, []),
                entry.allowance_items if entry is not None else [],
                rates,
            )
            calc_hash = self.engine.calculation_hash(
                calc, profile.pay_method, profile.monthly_salary_cents, rates.version
            )
            if (
                entry is not None
                and entry.calculation_hash == calc_hash
                and entry.staff_name == profile.full_name
                and entry.review_reason != INELIGIBLE_REVIEW_REASON
            ):
                continue
            plan.append((entry, profile, calc, calc_hash))

        eligible = set(staff_ids)
        stale = [
            e
            for e in existing.values()
            if e.staff_id not in eligible and e.review_reason != INELIGIBLE_REVIEW_REASON
        ]

        created = updated = 0
        if plan or stale:
            await self._bump_period_version(period, observed_version, PeriodOperation.GENERATE_ENTRIES)

            for entry, profile, calc, calc_hash in plan:
                values = self._entry_values(calc, profile.pay_method, profile.monthly_salary_cents, rates, calc_hash)
                if entry is None:
                    self.session.add(
                        PayrollEntry(
                            entry_id=self.engine.entry_id_for(period_id, profile.staff_id),
                            period_id=period_id,
                            organization_id=period.organization_id,
                            staff_id=profile.staff_id,
                            staff_name=profile.full_name,
                            is_paid=False,
                            version=1,
                            **values,
                        )
                    )
                    created += 1
                else:
                    # An allowance or paid toggle committed since the read fails the version check
                    await self._conditional_entry_update(
                        entry,
                        PeriodOperation.GENERATE_ENTRIES,
                        {**values, "staff_name": profile.full_name},
                    )
                    updated += 1

            for entry in stale:
                logger.warning(
                    "Entry %s in period %s belongs to ineligible staff %s; flagged for review",
                    entry.entry_id,
                    period_id,
                    entry.staff_id,
                )
                await self._conditional_entry_update(
                    entry,
                    PeriodOperation.GENERATE_ENTRIES,
                    {"needs_review": True, "review_reason": INELIGIBLE_REVIEW_REASON},
                )

            await self.session.flush()

        flagged = sum(1 for _, _, calc, _ in plan if calc.needs_review) + len(stale)
        result = GenerationResult(
            period_id=period_id,
            created=created,
            updated=updated,
            unchanged=len(profiles) - created - updated,
            flagged=flagged,
            rates_version=rates.version,
        )
        await self._record_audit(
            period,
            action="entries_generated",
            actor=actor,
            details={
                "created": result.created,
                "updated": result.updated,
                "unchanged": result.unchanged,
                "flagged": result.flagged,
                "rates_version": rates.version,
            },
        )
        logger.info(
            "Generated entries for period %s: %s created, %s updated, %s unchanged",
            period_id,
            result.created,
            result.updated,
            result.unchanged,
        )
        return result

    async def finalize(
        self,
        period_id: UUID,
        actor: str,
        expected_version: int | None = None,
    ) -> PayrollPeriod:
        """Lock a draft period irreversibly.

        The status check, the version check and the finalized_at/by stamp
        happen in one conditional UPDATE. A period that is already
        finalized, or whose version moved on, raises ConcurrencyConflictError.
        """
        period = await self.get_period(period_id)
        if not PeriodStateMachine.can_finalize(period.status):
            raise ConcurrencyConflictError(
                "payroll period", period_id, "period is already finalized"
            )
        observed_version = period.version if expected_version is None else expected_version

        now = utcnow()
        result = await self.session.execute(
            update(PayrollPeriod)
            .where(
                PayrollPeriod.period_id == period_id,
                PayrollPeriod.is_finalized.is_(False),
                PayrollPeriod.version == observed_version,
            )
            .values(
                is_finalized=True,
                finalized_at=now,
                finalized_by=actor,
                version=PayrollPeriod.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConcurrencyConflictError(
                "payroll period",
                period_id,
                f"period changed since version {observed_version} was read",
            )

        period = await self.get_period(period_id)
        await self._record_audit(period, action="finalized", actor=actor)
        logger.info("Finalized payroll period %s by %s", period_id, actor)
        return period

    async def archive(self, period_id: UUID, actor: str | None = None) -> PayrollPeriod:
        """Hide a period from default listings. Allowed in any state."""
        period = await self.get_period(period_id)
        if not period.is_archived:
            period.is_archived = True
            period.archived_at = utcnow()
            period.archived_by = actor
            await self.session.flush()
            await self._record_audit(period, action="archived", actor=actor)
            logger.info("Archived payroll period %s", period_id)
        return period

    async def unarchive(self, period_id: UUID, actor: str | None = None) -> PayrollPeriod:
        period = await self.get_period(period_id)
        if period.is_archived:
            period.is_archived = False
            period.archived_at = None
            period.archived_by = None
            await self.session.flush()
            await self._record_audit(period, action="unarchived", actor=actor)
            logger.info("Unarchived payroll period %s", period_id)
        return period

    async def period_summary(self, period_id: UUID) -> PeriodSummary:
        await self.get_period(period_id)
        result = await self.session.execute(
            select(
                func.count(PayrollEntry.entry_id),
                func.coalesce(func.sum(PayrollEntry.gross_cents), 0),
                func.coalesce(func.sum(PayrollEntry.deductions_total_cents), 0),
                func.coalesce(func.sum(PayrollEntry.net_pay_cents), 0),
                func.coalesce(
                    func.sum(
                        PayrollEntry.nssf_employer_cents
                        + PayrollEntry.housing_levy_employer_cents
                    ),
                    0,
                ),
                func.count(PayrollEntry.entry_id).filter(PayrollEntry.is_paid.is_(True)),
                func.count(PayrollEntry.entry_id).filter(PayrollEntry.needs_review.is_(True)),
            ).where(PayrollEntry.period_id == period_id, PAYABLE_ENTRY)
        )
        count, gross, deductions, net, employer, paid, review = result.one()
        return PeriodSummary(
            period_id=period_id,
            entry_count=count,
            total_gross_cents=int(gross),
            total_deductions_cents=int(deductions),
            total_net_cents=int(net),
            total_employer_contributions_cents=int(employer),
            paid_count=paid,
            pending_count=count - paid,
            needs_review_count=review,
        )

    # ===== Allowances =====

    async def add_allowance(
        self,
        entry_id: UUID,
        amount_cents: int,
        notes: str = "",
        actor: str | None = None,
    ) -> PayrollEntry:
        entry, _ = await self._load_for_mutation(entry_id, PeriodOperation.ADD_ALLOWANCE)
        ledger = AllowanceLedger(entry.allowance_items).add(amount_cents, notes)
        return await self._reprice_entry(entry, ledger, PeriodOperation.ADD_ALLOWANCE, actor)

    async def edit_allowance(
        self,
        entry_id: UUID,
        index: int,
        amount_cents: int,
        notes: str = "",
        actor: str | None = None,
    ) -> PayrollEntry:
        entry, _ = await self._load_for_mutation(entry_id, PeriodOperation.EDIT_ALLOWANCE)
        ledger = AllowanceLedger(entry.allowance_items).edit(index, amount_cents, notes)
        return await self._reprice_entry(entry, ledger, PeriodOperation.EDIT_ALLOWANCE, actor)

    async def delete_allowance(
        self,
        entry_id: UUID,
        index: int,
        actor: str | None = None,
    ) -> PayrollEntry:
        entry, _ = await self._load_for_mutation(entry_id, PeriodOperation.DELETE_ALLOWANCE)
        ledger = AllowanceLedger(entry.allowance_items).delete(index)
        return await self._reprice_entry(entry, ledger, PeriodOperation.DELETE_ALLOWANCE, actor)

    # ===== Paid toggles =====

    async def mark_paid(self, entry_id: UUID, actor: str) -> PaidToggleAudit:
        return await self._set_paid(entry_id, True, actor, PeriodOperation.MARK_PAID)

    async def unmark_paid(self, entry_id: UUID, actor: str) -> PaidToggleAudit:
        return await self._set_paid(entry_id, False, actor, PeriodOperation.UNMARK_PAID)

    async def mark_all_paid(self, period_id: UUID, actor: str) -> int:
        """Mark every unpaid entry of eligible staff in a draft period as paid."""
        self.capabilities.require("can_payout")
        period = await self.get_period(period_id)
        PeriodStateMachine.validate_mutation(period, PeriodOperation.MARK_ALL_PAID)

        await self._bump_period_version(period, period.version, PeriodOperation.MARK_ALL_PAID)

        now = utcnow()
        result = await self.session.execute(
            update(PayrollEntry)
            .where(
                PayrollEntry.period_id == period_id,
                PayrollEntry.is_paid.is_(False),
                PAYABLE_ENTRY,
            )
            .values(
                is_paid=True,
                paid_at=now,
                paid_by=actor,
                version=PayrollEntry.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        count = result.rowcount

        await self._record_audit(period, action="mark_all_paid", actor=actor, details={"count": count})
        logger.info("Marked %s entries paid in period %s", count, period_id)
        return count

    # ===== Internals =====

    async def _set_paid(
        self,
        entry_id: UUID,
        is_paid: bool,
        actor: str,
        operation: PeriodOperation,
    ) -> PaidToggleAudit:
        self.capabilities.require("can_payout")
        entry, _ = await self._load_for_mutation(entry_id, operation)

        now = utcnow()
        await self._conditional_entry_update(
            entry,
            operation,
            {"is_paid": is_paid, "paid_at": now, "paid_by": actor},
        )
        logger.info("Entry %s %s by %s", entry_id, operation.value, actor)
        return PaidToggleAudit(entry_id=entry_id, is_paid=is_paid, paid_at=now, paid_by=actor)

    async def _load_for_mutation(
        self, entry_id: UUID, operation: PeriodOperation
    ) -> tuple[PayrollEntry, PayrollPeriod]:
        entry = await self.get_entry(entry_id)
        period = await self.get_period(entry.period_id)
        try:
            PeriodStateMachine.validate_mutation(period, operation)
        except ImmutableStateError:
            logger.warning("Rejected %s on entry %s: period is finalized", operation.value, entry_id)
            raise
        return entry, period

    async def _reprice_entry(
        self,
        entry: PayrollEntry,
        ledger: AllowanceLedger,
        operation: PeriodOperation,
        actor: str | None,
    ) -> PayrollEntry:
        """Recompute gross, deductions and net after an allowance change."""
        rates = await self._rates_for(entry)
        pay_method = PayMethod(entry.pay_method)
        units = UnitCounts(
            worked_units=entry.worked_units,
            paid_leave_units=entry.paid_leave_units,
            unpaid_leave_units=entry.unpaid_leave_units,
            absent_units=entry.absent_units,
            month_units=entry.month_units,
        )
        calc = self.engine.price(
            staff_id=entry.staff_id,
            pay_method=pay_method,
            monthly_salary_cents=entry.monthly_salary_cents,
            units=units,
            allowances=ledger.items,
            rates=rates,
        )
        calc_hash = self.engine.calculation_hash(
            calc, pay_method, entry.monthly_salary_cents, rates.version
        )
        values = self._entry_values(calc, pay_method, entry.monthly_salary_cents, rates, calc_hash)
        updated = await self._conditional_entry_update(entry, operation, values)
        logger.info(
            "Entry %s %s by %s; allowances now %s cents",
            entry.entry_id,
            operation.value,
            actor,
            updated.allowances_total_cents,
        )
        return updated

    async def _rates_for(self, entry: PayrollEntry) -> RatesConfiguration:
        if entry.rates_version is None:
            return await self.rates_service.get_current()
        return await self.rates_service.get_version(entry.rates_version)

    async def _conditional_entry_update(
        self,
        entry: PayrollEntry,
        operation: PeriodOperation,
        values: dict[str, Any],
    ) -> PayrollEntry:
        """Write entry fields only if the entry is unchanged and its period is still draft."""
        period_is_draft = (
            select(PayrollPeriod.period_id)
            .where(
                PayrollPeriod.period_id == entry.period_id,
                PayrollPeriod.is_finalized.is_(False),
            )
            .exists()
        )
        result = await self.session.execute(
            update(PayrollEntry)
            .where(
                PayrollEntry.entry_id == entry.entry_id,
                PayrollEntry.version == entry.version,
                period_is_draft,
            )
            .values(**values, version=PayrollEntry.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            period = await self.get_period(entry.period_id)
            if period.is_finalized:
                raise ImmutableStateError(entry.period_id, operation.value)
            raise ConcurrencyConflictError(
                "payroll entry", entry.entry_id, f"entry changed since version {entry.version} was read"
            )
        return await self.get_entry(entry.entry_id)

    async def _bump_period_version(
        self,
        period: PayrollPeriod,
        observed_version: int,
        operation: PeriodOperation,
    ) -> None:
        """Compare-and-swap the period version, claiming the period for a batch write."""
        result = await self.session.execute(
            update(PayrollPeriod)
            .where(
                PayrollPeriod.period_id == period.period_id,
                PayrollPeriod.is_finalized.is_(False),
                PayrollPeriod.version == observed_version,
            )
            .values(version=PayrollPeriod.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current = await self.get_period(period.period_id)
            if current.is_finalized:
                raise ImmutableStateError(period.period_id, operation.value)
            raise ConcurrencyConflictError(
                "payroll period",
                period.period_id,
                f"period changed since version {observed_version} was read",
            )
        await self.session.refresh(period)

    @staticmethod
    def _entry_values(
        calc: EntryCalculation,
        pay_method: PayMethod,
        monthly_salary_cents: int,
        rates: RatesConfiguration,
        calc_hash: str,
    ) -> dict[str, Any]:
        details = calc.deductions.details
        return {
            "pay_method": pay_method.value,
            "monthly_salary_cents": monthly_salary_cents,
            "worked_units": calc.units.worked_units,
            "paid_leave_units": calc.units.paid_leave_units,
            "unpaid_leave_units": calc.units.unpaid_leave_units,
            "absent_units": calc.units.absent_units,
            "month_units": calc.units.month_units,
            "payable_base_cents": calc.payable_base_cents,
            "allowances": [a.to_dict() for a in calc.allowances],
            "allowances_total_cents": calc.allowances_total_cents,
            "gross_cents": calc.gross_cents,
            "paye_cents": details.paye_cents,
            "nssf_employee_cents": details.nssf_employee_cents,
            "nssf_employer_cents": details.nssf_employer_cents,
            "shif_cents": details.shif_cents,
            "housing_levy_employee_cents": details.housing_levy_employee_cents,
            "housing_levy_employer_cents": details.housing_levy_employer_cents,
            "deductions_total_cents": details.total_cents,
            "net_pay_cents": calc.deductions.net_pay_cents,
            "needs_review": calc.needs_review,
            "review_reason": "; ".join(calc.review_reasons) or None,
            "rates_version": rates.version,
            "calculation_hash": calc_hash,
        }

    async def _load_profiles(self, organization_id: UUID) -> list[StaffPayProfile]:
        result = await self.session.execute(
            select(Staff)
            .where(
                Staff.organization_id == organization_id,
                Staff.staff_status == "Active",
            )
            .order_by(Staff.full_name, Staff.staff_id)
        )
        profiles = []
        for staff in result.scalars().all():
            if is_excluded_owner(staff):
                logger.info("Excluding owner %s from payroll (no pay configured)", staff.staff_id)
                continue
            profiles.append(parse_staff_profile(staff))
        return profiles

    async def _load_attendance(
        self, period: PayrollPeriod, staff_ids: list[UUID]
    ) -> dict[UUID, list]:
        if not staff_ids:
            return {}
        result = await self.session.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.organization_id == period.organization_id,
                AttendanceRecord.staff_id.in_(staff_ids),
                AttendanceRecord.is_external.is_(False),
                AttendanceRecord.work_date >= period.start_date,
                AttendanceRecord.work_date <= period.end_date,
            )
        )
        by_staff: dict[UUID, list] = {}
        for record in result.scalars().all():
            parsed = parse_attendance(record)
            by_staff.setdefault(parsed.staff_id, []).append(parsed)
        return by_staff

    async def _load_leave(
        self, period: PayrollPeriod, staff_ids: list[UUID]
    ) -> dict[UUID, list]:
        if not staff_ids:
            return {}
        result = await self.session.execute(
            select(LeaveRecord).where(
                LeaveRecord.organization_id == period.organization_id,
                LeaveRecord.staff_id.in_(staff_ids),
                LeaveRecord.status == LeaveStatus.APPROVED.value,
                LeaveRecord.start_date <= period.end_date,
                LeaveRecord.end_date >= period.start_date,
            )
        )
        by_staff: dict[UUID, list] = {}
        for record in result.scalars().all():
            parsed = parse_leave(record)
            by_staff.setdefault(parsed.staff_id, []).append(parsed)
        return by_staff

    async def _record_audit(
        self,
        period: PayrollPeriod,
        action: str,
        actor: str | None = None,
        details: dict | None = None,
    ) -> None:
        """Record an audit event for a period action."""
        event = AuditEvent(
            organization_id=period.organization_id,
            actor=actor,
            entity_type="payroll_period",
            entity_id=period.period_id,
            action=action,
            details_json=details,
        )
        self.session.add(event)
        await self.session.flush()
