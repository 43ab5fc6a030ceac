"""Type definitions for the calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class PayMethod(str, Enum):
    """How the payable base is derived from the monthly salary."""

    FIXED = "Fixed"
    PRORATED = "Prorated"


class SystemRole(str, Enum):
    """Organization role of a staff member."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    EMPLOYEE = "EMPLOYEE"


class AttendanceStatus(str, Enum):
    """Attendance record status values."""

    PRESENT = "Present"
    PARTIAL = "Partial"
    ABSENT = "Absent"
    ON_LEAVE = "On Leave"
    WORKED = "Worked"
    NO_SHOW = "No-show"


# Statuses whose hours are credited as work
WORKING_STATUSES = frozenset(
    {AttendanceStatus.PRESENT, AttendanceStatus.WORKED, AttendanceStatus.PARTIAL}
)


class LeaveStatus(str, Enum):
    """Leave request status values. Only approved leave affects pay."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"


class LocumStatus(str, Enum):
    """Status of a locum shift assignment."""

    SCHEDULED = "Scheduled"
    WORKED = "Worked"
    NO_SHOW = "No-show"


class OpenShiftPolicy(str, Enum):
    """How a clock-in without clock-out is credited."""

    STANDARD_DAY = "standard_day"
    NO_CREDIT = "no_credit"


# ===== Validated source records =====


@dataclass(frozen=True)
class AttendanceInput:
    """A validated attendance record for one staff member and day."""

    staff_id: UUID
    work_date: date
    status: AttendanceStatus
    total_hours: Decimal | None = None
    clock_in: datetime | None = None
    clock_out: datetime | None = None

    @property
    def is_open_shift(self) -> bool:
        return self.clock_in is not None and self.clock_out is None and self.total_hours is None


@dataclass(frozen=True)
class LeaveInput:
    """A validated leave record covering an inclusive date range."""

    staff_id: UUID
    start_date: date
    end_date: date
    is_paid: bool
    status: LeaveStatus

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class StaffPayProfile:
    """A validated staff pay profile."""

    staff_id: UUID
    full_name: str
    pay_method: PayMethod
    monthly_salary_cents: int
    hourly_rate_cents: int
    system_role: SystemRole


# ===== Calculation outputs =====


@dataclass(frozen=True)
class UnitCounts:
    """Day-unit counts for one staff member over a period."""

    worked_units: int
    paid_leave_units: int
    unpaid_leave_units: int
    absent_units: int
    month_units: int

    @property
    def paid_units(self) -> int:
        return self.worked_units + self.paid_leave_units


@dataclass(frozen=True)
class DeductionDetails:
    """Statutory deduction breakdown in cents.

    total_cents is the employee side only; employer amounts are carried for
    cost reporting and never reduce net pay.
    """

    paye_cents: int = 0
    nssf_employee_cents: int = 0
    nssf_employer_cents: int = 0
    shif_cents: int = 0
    housing_levy_employee_cents: int = 0
    housing_levy_employer_cents: int = 0

    @property
    def total_cents(self) -> int:
        return (
            self.paye_cents
            + self.nssf_employee_cents
            + self.shif_cents
            + self.housing_levy_employee_cents
        )

    @property
    def employer_total_cents(self) -> int:
        return self.nssf_employer_cents + self.housing_levy_employer_cents

    def to_dict(self) -> dict[str, int]:
        return {
            "paye_cents": self.paye_cents,
            "nssf_employee_cents": self.nssf_employee_cents,
            "nssf_employer_cents": self.nssf_employer_cents,
            "shif_cents": self.shif_cents,
            "housing_levy_employee_cents": self.housing_levy_employee_cents,
            "housing_levy_employer_cents": self.housing_levy_employer_cents,
            "total_cents": self.total_cents,
        }


@dataclass(frozen=True)
class DeductionResult:
    """Deductions plus the net pay they produce."""

    gross_cents: int
    details: DeductionDetails
    net_pay_cents: int
    net_clamped: bool = False


@dataclass(frozen=True)
class Allowance:
    """One extra cash amount on an entry."""

    amount_cents: int
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"amount_cents": self.amount_cents, "notes": self.notes}


# ===== Rates configuration =====


@dataclass(frozen=True)
class PayeBand:
    """PAYE band; upper_limit_cents None means no upper limit."""

    upper_limit_cents: int | None
    rate: Decimal


@dataclass(frozen=True)
class RatesConfiguration:
    """Statutory rate tables supplied to the deduction engine.

    Rates are fractions (Decimal("0.0275") for 2.75%). Limits are monthly
    amounts in cents.
    """

    version: int
    paye_bands: tuple[PayeBand, ...]
    personal_relief_cents: int
    nssf_tier1_limit_cents: int
    nssf_tier2_limit_cents: int
    nssf_employee_rate: Decimal
    nssf_employer_rate: Decimal
    shif_rate: Decimal
    housing_levy_rate: Decimal
    shif_minimum_cents: int = 0
    # Tier II falls back to the shared NSSF rates when unset
    nssf_tier2_employee_rate: Decimal | None = None
    nssf_tier2_employer_rate: Decimal | None = None
    effective_from: date | None = None

    @property
    def tier2_employee_rate(self) -> Decimal:
        if self.nssf_tier2_employee_rate is None:
            return self.nssf_employee_rate
        return self.nssf_tier2_employee_rate

    @property
    def tier2_employer_rate(self) -> Decimal:
        if self.nssf_tier2_employer_rate is None:
            return self.nssf_employer_rate
        return self.nssf_tier2_employer_rate

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the JSON payload stored with a rules version."""
        payload: dict[str, Any] = {
            "paye_bands": [
                {
                    "upper_limit_cents": b.upper_limit_cents,
                    "rate": str(b.rate),
                }
                for b in self.paye_bands
            ],
            "personal_relief_cents": self.personal_relief_cents,
            "nssf_tier1_limit_cents": self.nssf_tier1_limit_cents,
            "nssf_tier2_limit_cents": self.nssf_tier2_limit_cents,
            "nssf_employee_rate": str(self.nssf_employee_rate),
            "nssf_employer_rate": str(self.nssf_employer_rate),
            "shif_rate": str(self.shif_rate),
            "shif_minimum_cents": self.shif_minimum_cents,
            "housing_levy_rate": str(self.housing_levy_rate),
        }
        if self.nssf_tier2_employee_rate is not None:
            payload["nssf_tier2_employee_rate"] = str(self.nssf_tier2_employee_rate)
        if self.nssf_tier2_employer_rate is not None:
            payload["nssf_tier2_employer_rate"] = str(self.nssf_tier2_employer_rate)
        return payload


# ===== Engine context =====


@dataclass
class EntryCalculation:
    """Result of computing one staff member's entry for a period."""

    staff_id: UUID
    units: UnitCounts
    payable_base_cents: int = 0
    allowances: list[Allowance] = field(default_factory=list)
    deductions: DeductionResult | None = None
    review_reasons: list[str] = field(default_factory=list)

    @property
    def allowances_total_cents(self) -> int:
        return sum(a.amount_cents for a in self.allowances)

    @property
    def gross_cents(self) -> int:
        return self.payable_base_cents + self.allowances_total_cents

    @property
    def needs_review(self) -> bool:
        return len(self.review_reasons) > 0
