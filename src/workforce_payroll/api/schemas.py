"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Period schemas
# ============================================================================


class PeriodCreate(BaseModel):
    """Schema for creating a new payroll period."""

    name: str = Field(min_length=1, max_length=200)
    start_date: date
    end_date: date


class PeriodResponse(BaseModel):
    """Schema for payroll period response."""

    model_config = ConfigDict(from_attributes=True)

    period_id: UUID
    organization_id: UUID
    name: str
    start_date: date
    end_date: date
    status: str
    is_finalized: bool
    finalized_at: datetime | None = None
    finalized_by: str | None = None
    is_archived: bool
    archived_at: datetime | None = None
    archived_by: str | None = None
    version: int


class PeriodListResponse(BaseModel):
    """Schema for listing periods."""

    items: list[PeriodResponse]
    total: int


class FinalizeRequest(BaseModel):
    """Optional version the caller last observed."""

    expected_version: int | None = None


class GenerationResponse(BaseModel):
    """Schema for entry generation results."""

    model_config = ConfigDict(from_attributes=True)

    period_id: UUID
    created: int
    updated: int
    unchanged: int
    flagged: int
    rates_version: int


class PeriodSummaryResponse(BaseModel):
    """Schema for period totals."""

    model_config = ConfigDict(from_attributes=True)

    period_id: UUID
    entry_count: int
    total_gross_cents: int
    total_deductions_cents: int
    total_net_cents: int
    total_employer_contributions_cents: int
    paid_count: int
    pending_count: int
    needs_review_count: int


class MarkAllPaidResponse(BaseModel):
    period_id: UUID
    marked: int


# ============================================================================
# Entry schemas
# ============================================================================


class AllowanceItem(BaseModel):
    amount_cents: int
    notes: str = ""


class AllowanceRequest(BaseModel):
    """Schema for adding or editing an allowance."""

    amount_cents: int
    notes: str = ""


class EntryResponse(BaseModel):
    """Schema for payroll entry response."""

    model_config = ConfigDict(from_attributes=True)

    entry_id: UUID
    period_id: UUID
    staff_id: UUID
    staff_name: str
    pay_method: str
    monthly_salary_cents: int
    worked_units: int
    paid_leave_units: int
    unpaid_leave_units: int
    absent_units: int
    paid_units: int
    month_units: int
    payable_base_cents: int
    allowances: list[AllowanceItem]
    allowances_total_cents: int
    gross_cents: int
    paye_cents: int
    nssf_employee_cents: int
    nssf_employer_cents: int
    shif_cents: int
    housing_levy_employee_cents: int
    housing_levy_employer_cents: int
    deductions_total_cents: int
    net_pay_cents: int
    needs_review: bool
    review_reason: str | None = None
    is_paid: bool
    paid_at: datetime | None = None
    paid_by: str | None = None
    rates_version: int | None = None
    version: int


class PaidToggleResponse(BaseModel):
    """Audit signal for a paid/unpaid toggle."""

    model_config = ConfigDict(from_attributes=True)

    entry_id: UUID
    is_paid: bool
    paid_at: datetime
    paid_by: str | None = None


class PayslipResponse(BaseModel):
    """Employee payslip view; entry is omitted until visible."""

    model_config = ConfigDict(from_attributes=True)

    entry_id: UUID
    available: bool
    available_at: datetime | None = None
    period_name: str
    entry: EntryResponse | None = None


# ============================================================================
# Locum schemas
# ============================================================================


class LocumPayoutResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    assignment_id: UUID
    shift_id: UUID
    locum_name: str
    shift_date: date
    shift_time: str
    role: str | None = None
    location: str | None = None
    rate_cents: int
    status: str
    payable_cents: int


class LocumPayoutReportResponse(BaseModel):
    start_date: date
    end_date: date
    payouts: list[LocumPayoutResponse]
    total_payable_cents: int
    worked_count: int
    scheduled_count: int
    no_show_count: int


class LocumStatusRequest(BaseModel):
    status: str


# ============================================================================
# Statutory rates schemas
# ============================================================================


class RulesVersionResponse(BaseModel):
    """Schema for a statutory rules version."""

    model_config = ConfigDict(from_attributes=True)

    rule_version_id: UUID
    country: str
    version: int
    effective_from: date
    effective_until: date | None = None
    is_active: bool
    payload_json: dict[str, Any]
    updated_by: str | None = None
    notes: str | None = None


class RulesPublishRequest(BaseModel):
    """Field updates merged over the active rules payload."""

    updates: dict[str, Any]
    effective_from: date | None = None
    notes: str | None = None


class DeductionPreviewRequest(BaseModel):
    monthly_salary_cents: int
    allowances_cents: int = 0


class DeductionPreviewResponse(BaseModel):
    gross_cents: int
    paye_cents: int
    nssf_employee_cents: int
    nssf_employer_cents: int
    shif_cents: int
    housing_levy_employee_cents: int
    housing_levy_employer_cents: int
    total_cents: int
    net_pay_cents: int
    net_clamped: bool


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
