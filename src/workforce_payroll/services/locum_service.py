"""Per-shift payouts for external locums."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from workforce_payroll.calculators.types import AttendanceStatus, LocumStatus
from workforce_payroll.calculators.validation import parse_enum
from workforce_payroll.config import Settings, get_settings
from workforce_payroll.errors import ImmutableStateError, NotFoundError
from workforce_payroll.models import (
    AttendanceRecord,
    PayrollPeriod,
    Shift,
    ShiftAssignment,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocumPayoutEntry:
    """One locum assignment on one shift. Derived per query, never stored."""

    assignment_id: UUID
    shift_id: UUID
    locum_name: str
    shift_date: date
    shift_time: str
    role: str | None
    location: str | None
    rate_cents: int
    status: LocumStatus

    @property
    def payable_cents(self) -> int:
        return self.rate_cents if self.status == LocumStatus.WORKED else 0


@dataclass(frozen=True)
class LocumPayoutReport:
    """Locum payouts over a date range."""

    start_date: date
    end_date: date
    payouts: list[LocumPayoutEntry] = field(default_factory=list)

    @property
    def total_payable_cents(self) -> int:
        return sum(p.payable_cents for p in self.payouts)

    def count(self, status: LocumStatus) -> int:
        return sum(1 for p in self.payouts if p.status == status)


def _payout_entry(
    shift: Shift, assignment: ShiftAssignment, status: LocumStatus
) -> LocumPayoutEntry:
    return LocumPayoutEntry(
        assignment_id=assignment.assignment_id,
        shift_id=shift.shift_id,
        locum_name=assignment.locum_name or "",
        shift_date=shift.shift_date,
        shift_time=f"{shift.start_time}-{shift.end_time}",
        role=shift.role_required,
        location=shift.location_name,
        rate_cents=assignment.rate_cents or 0,
        status=status,
    )


class LocumPayoutTracker:
    """Tracks locum shift outcomes independently of employee periods.

    A locum's status is the attendance record written against their shift
    assignment: none means Scheduled. Status changes are not blocked by a
    finalized employee period unless ``lock_locums_with_period`` is set.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()

    async def payouts_for_period(self, period_id: UUID) -> LocumPayoutReport:
        period = await self.session.get(PayrollPeriod, period_id)
        if period is None:
            raise NotFoundError("payroll period", period_id)
        return await self.payouts_for_range(
            period.organization_id, period.start_date, period.end_date
        )

    async def payouts_for_range(
        self,
        organization_id: UUID,
        start_date: date,
        end_date: date,
    ) -> LocumPayoutReport:
        result = await self.session.execute(
            select(Shift)
            .where(
                Shift.organization_id == organization_id,
                Shift.shift_date >= start_date,
                Shift.shift_date <= end_date,
            )
            .options(selectinload(Shift.assignments))
            .order_by(Shift.shift_date, Shift.start_time, Shift.shift_id)
        )
        shifts = result.scalars().all()

        assignments = [
            (shift, a) for shift in shifts for a in shift.assignments if a.is_locum
        ]
        statuses = await self._statuses([a.assignment_id for _, a in assignments])

        payouts = [
            _payout_entry(shift, a, statuses.get(a.assignment_id, LocumStatus.SCHEDULED))
            for shift, a in assignments
        ]
        payouts.sort(key=lambda p: (p.shift_date, p.shift_time, p.locum_name, str(p.assignment_id)))
        return LocumPayoutReport(start_date=start_date, end_date=end_date, payouts=payouts)

    async def record_status(
        self,
        assignment_id: UUID,
        status: LocumStatus | str,
        actor: str | None = None,
    ) -> LocumPayoutEntry:
        """Record (or overwrite) the outcome of a locum shift.

        Scheduled clears any recorded outcome.
        """
        status = parse_enum(LocumStatus, status, "status")

        assignment = await self._get_locum_assignment(assignment_id)
        shift = assignment.shift

        if self.settings.lock_locums_with_period:
            await self._check_not_locked(shift)

        await self.session.execute(
            delete(AttendanceRecord).where(
                AttendanceRecord.shift_assignment_id == assignment_id
            )
        )
        if status != LocumStatus.SCHEDULED:
            self.session.add(
                AttendanceRecord(
                    organization_id=shift.organization_id,
                    staff_id=None,
                    shift_id=shift.shift_id,
                    shift_assignment_id=assignment_id,
                    work_date=shift.shift_date,
                    status=AttendanceStatus(status.value).value,
                    is_external=True,
                    external_locum_name=assignment.locum_name,
                    recorded_by=actor,
                )
            )
        await self.session.flush()

        logger.info(
            "Locum %s on shift %s marked %s by %s",
            assignment.locum_name,
            shift.shift_id,
            status.value,
            actor,
        )
        return _payout_entry(shift, assignment, status)

    async def organization_of(self, assignment_id: UUID) -> UUID | None:
        """Organization owning an assignment's shift, or None if unknown."""
        return await self.session.scalar(
            select(Shift.organization_id)
            .join(ShiftAssignment, ShiftAssignment.shift_id == Shift.shift_id)
            .where(ShiftAssignment.assignment_id == assignment_id)
        )

    async def _get_locum_assignment(self, assignment_id: UUID) -> ShiftAssignment:
        result = await self.session.execute(
            select(ShiftAssignment)
            .where(
                ShiftAssignment.assignment_id == assignment_id,
                ShiftAssignment.is_locum.is_(True),
            )
            .options(selectinload(ShiftAssignment.shift))
        )
        assignment = result.scalar_one_or_none()
        if assignment is None:
            raise NotFoundError("locum assignment", assignment_id)
        return assignment

    async def _check_not_locked(self, shift: Shift) -> None:
        result = await self.session.execute(
            select(PayrollPeriod.period_id)
            .where(
                PayrollPeriod.organization_id == shift.organization_id,
                PayrollPeriod.is_finalized.is_(True),
                PayrollPeriod.start_date <= shift.shift_date,
                PayrollPeriod.end_date >= shift.shift_date,
            )
            .limit(1)
        )
        period_id = result.scalar_one_or_none()
        if period_id is not None:
            logger.warning(
                "Rejected locum status change on %s: period %s is finalized",
                shift.shift_date,
                period_id,
            )
            raise ImmutableStateError(period_id, "record locum status")

    async def _statuses(self, assignment_ids: list[UUID]) -> dict[UUID, LocumStatus]:
        if not assignment_ids:
            return {}
        result = await self.session.execute(
            select(AttendanceRecord.shift_assignment_id, AttendanceRecord.status).where(
                AttendanceRecord.shift_assignment_id.in_(assignment_ids)
            )
        )
        statuses: dict[UUID, LocumStatus] = {}
        for assignment_id, raw in result.all():
            if raw == AttendanceStatus.WORKED.value:
                statuses[assignment_id] = LocumStatus.WORKED
            elif raw == AttendanceStatus.NO_SHOW.value:
                statuses[assignment_id] = LocumStatus.NO_SHOW
        return statuses
