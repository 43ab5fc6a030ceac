"""Day-unit aggregation from attendance and leave."""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Iterable, Iterator
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from workforce_payroll.calculators.types import (
    WORKING_STATUSES,
    AttendanceInput,
    LeaveInput,
    LeaveStatus,
    OpenShiftPolicy,
    UnitCounts,
)
from workforce_payroll.errors import ValidationError

SECONDS_PER_HOUR = Decimal(3600)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield each calendar day in the inclusive range."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def inclusive_day_count(start: date, end: date) -> int:
    return (end - start).days + 1


class UnitsAggregator:
    """Converts attendance and approved leave into day-unit counts.

    Every calendar day in the period lands in exactly one bucket:

    - approved leave covering the day -> paid or unpaid leave, overriding
      any attendance recorded that day;
    - Present/Worked/Partial attendance with credited hours -> worked;
    - anything else -> absent.

    Credited hours become worked days via ``ceil(hours / workday_hours)``,
    capped at one unit per calendar day.
    """

    def __init__(
        self,
        standard_workday_hours: int = 8,
        open_shift_policy: OpenShiftPolicy = OpenShiftPolicy.STANDARD_DAY,
    ):
        if standard_workday_hours <= 0:
            raise ValidationError("must be positive", "standard_workday_hours")
        self.standard_workday_hours = Decimal(standard_workday_hours)
        self.open_shift_policy = open_shift_policy

    def aggregate(
        self,
        staff_id: UUID,
        period_start: date,
        period_end: date,
        attendance: Iterable[AttendanceInput],
        leave: Iterable[LeaveInput],
    ) -> UnitCounts:
        """Count units for one staff member over an inclusive date range."""
        if period_end < period_start:
            raise ValidationError("period ends before it starts", "end_date")

        approved_leave = [
            lv
            for lv in leave
            if lv.staff_id == staff_id
            and lv.status == LeaveStatus.APPROVED
            and lv.start_date <= period_end
            and lv.end_date >= period_start
        ]
        hours_by_day = self._credited_hours_by_day(staff_id, period_start, period_end, attendance)

        worked = paid_leave = unpaid_leave = absent = 0

        for day in iter_days(period_start, period_end):
            covering = [lv for lv in approved_leave if lv.covers(day)]
            if covering:
                # Overlapping approvals: paid wins
                if any(lv.is_paid for lv in covering):
                    paid_leave += 1
                else:
                    unpaid_leave += 1
                continue

            hours = hours_by_day.get(day)
            if hours is not None and self.hours_to_days(hours) > 0:
                worked += 1
            else:
                absent += 1

        return UnitCounts(
            worked_units=worked,
            paid_leave_units=paid_leave,
            unpaid_leave_units=unpaid_leave,
            absent_units=absent,
            month_units=inclusive_day_count(period_start, period_end),
        )

    def hours_to_days(self, hours: Decimal) -> int:
        """Whole worked days for a day's hours, at most one."""
        if hours <= 0:
            return 0
        return min(1, math.ceil(hours / self.standard_workday_hours))

    def credited_hours(self, record: AttendanceInput) -> Decimal:
        """Hours credited for one attendance record."""
        if record.total_hours is not None:
            return record.total_hours
        if record.clock_in is not None and record.clock_out is not None:
            seconds = Decimal(str((record.clock_out - record.clock_in).total_seconds()))
            return seconds / SECONDS_PER_HOUR
        if record.is_open_shift and self.open_shift_policy == OpenShiftPolicy.STANDARD_DAY:
            return self.standard_workday_hours
        return Decimal(0)

    def _credited_hours_by_day(
        self,
        staff_id: UUID,
        period_start: date,
        period_end: date,
        attendance: Iterable[AttendanceInput],
    ) -> dict[date, Decimal]:
        hours: dict[date, Decimal] = defaultdict(Decimal)
        for record in attendance:
            if record.staff_id != staff_id:
                continue
            if not (period_start <= record.work_date <= period_end):
                continue
            if record.status not in WORKING_STATUSES:
                continue
            hours[record.work_date] += self.credited_hours(record)
        return dict(hours)
