"""Boundary validation of loosely typed upstream records.

Attendance, leave and staff rows arrive with optional and partially filled
fields. Everything is converted into the frozen dataclasses in
``calculators.types`` here, so that no ``None`` or NaN ever reaches money
math. Anything malformed raises ValidationError.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar
from uuid import UUID

from workforce_payroll.calculators.types import (
    AttendanceInput,
    AttendanceStatus,
    LeaveInput,
    LeaveStatus,
    PayeBand,
    PayMethod,
    RatesConfiguration,
    StaffPayProfile,
    SystemRole,
)
from workforce_payroll.errors import ValidationError

E = TypeVar("E", bound=Enum)


def _get(record: Any, key: str, default: Any = None) -> Any:
    """Read a field from a mapping or an attribute-style record."""
    if isinstance(record, Mapping):
        return record.get(key, default)
    return getattr(record, key, default)


def parse_uuid(value: Any, field: str) -> UUID:
    if isinstance(value, UUID):
        return value
    if isinstance(value, str):
        try:
            return UUID(value)
        except ValueError:
            pass
    raise ValidationError(f"invalid identifier {value!r}", field)


def parse_date(value: Any, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            pass
    raise ValidationError(f"invalid date {value!r}", field)


def parse_datetime(value: Any, field: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    raise ValidationError(f"invalid timestamp {value!r}", field)


def parse_enum(enum_cls: type[E], value: Any, field: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(str(m.value) for m in enum_cls)
        raise ValidationError(f"unknown value {value!r} (expected one of {allowed})", field)


def parse_hours(value: Any, field: str) -> Decimal | None:
    """Parse a non-negative, finite hour count. None stays None."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"invalid hours {value!r}", field)
    try:
        hours = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"invalid hours {value!r}", field)
    if not hours.is_finite() or hours < 0:
        raise ValidationError(f"hours must be a non-negative number, got {value!r}", field)
    return hours


def parse_cents(value: Any, field: str, required: bool = True) -> int:
    """Parse a non-negative whole number of cents."""
    if value is None:
        if required:
            raise ValidationError("missing required amount", field)
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, Decimal, str)):
        raise ValidationError(f"amount must be whole cents, got {value!r}", field)
    try:
        cents = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"invalid amount {value!r}", field)
    if not cents.is_finite() or cents != cents.to_integral_value() or cents < 0:
        raise ValidationError(f"amount must be non-negative whole cents, got {value!r}", field)
    return int(cents)


def parse_rate(value: Any, field: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError("missing required rate", field)
    try:
        rate = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"invalid rate {value!r}", field)
    if not rate.is_finite() or rate < 0 or rate > 1:
        raise ValidationError(f"rate must be a fraction between 0 and 1, got {value!r}", field)
    return rate


# ===== Records =====


def validate_period_dates(start: Any, end: Any) -> tuple[date, date]:
    start_date = parse_date(start, "start_date")
    end_date = parse_date(end, "end_date")
    if end_date < start_date:
        raise ValidationError(
            f"end date {end_date} is before start date {start_date}", "end_date"
        )
    return start_date, end_date


def parse_attendance(record: Any) -> AttendanceInput:
    """Validate one attendance row."""
    staff_id = parse_uuid(_get(record, "staff_id"), "attendance.staff_id")
    work_date = parse_date(
        _get(record, "work_date", _get(record, "date")), "attendance.date"
    )
    status = parse_enum(AttendanceStatus, _get(record, "status"), "attendance.status")
    clock_in = parse_datetime(_get(record, "clock_in"), "attendance.clock_in")
    clock_out = parse_datetime(_get(record, "clock_out"), "attendance.clock_out")
    total_hours = parse_hours(_get(record, "total_hours"), "attendance.total_hours")

    if clock_in is not None and clock_out is not None and clock_out < clock_in:
        raise ValidationError("clock-out precedes clock-in", "attendance.clock_out")

    return AttendanceInput(
        staff_id=staff_id,
        work_date=work_date,
        status=status,
        total_hours=total_hours,
        clock_in=clock_in,
        clock_out=clock_out,
    )


def parse_leave(record: Any) -> LeaveInput:
    """Validate one leave row."""
    staff_id = parse_uuid(_get(record, "staff_id"), "leave.staff_id")
    start_date = parse_date(_get(record, "start_date"), "leave.start_date")
    end_date = parse_date(_get(record, "end_date"), "leave.end_date")
    if end_date < start_date:
        raise ValidationError("leave ends before it starts", "leave.end_date")

    is_paid = _get(record, "is_paid")
    if not isinstance(is_paid, bool):
        raise ValidationError(f"paid flag must be a boolean, got {is_paid!r}", "leave.is_paid")

    return LeaveInput(
        staff_id=staff_id,
        start_date=start_date,
        end_date=end_date,
        is_paid=is_paid,
        status=parse_enum(LeaveStatus, _get(record, "status"), "leave.status"),
    )


def is_excluded_owner(record: Any) -> bool:
    """Owners are left out of payroll unless a salary or hourly rate is set."""
    if _get(record, "system_role") != SystemRole.OWNER.value:
        return False
    salary = _get(record, "monthly_salary_cents") or 0
    hourly = _get(record, "hourly_rate_cents") or 0
    return salary <= 0 and hourly <= 0


def parse_staff_profile(record: Any) -> StaffPayProfile:
    """Validate a staff pay profile.

    A monthly salary is required unless an hourly rate is set, in which case
    a missing salary counts as 0.
    """
    staff_id = parse_uuid(_get(record, "staff_id"), "staff.staff_id")
    field_prefix = f"staff[{staff_id}]"

    pay_method_raw = _get(record, "pay_method")
    if pay_method_raw is None:
        raise ValidationError("missing required pay-profile field", f"{field_prefix}.pay_method")

    hourly_rate_cents = parse_cents(
        _get(record, "hourly_rate_cents"), f"{field_prefix}.hourly_rate_cents", required=False
    )

    return StaffPayProfile(
        staff_id=staff_id,
        full_name=_get(record, "full_name") or "",
        pay_method=parse_enum(PayMethod, pay_method_raw, f"{field_prefix}.pay_method"),
        monthly_salary_cents=parse_cents(
            _get(record, "monthly_salary_cents"),
            f"{field_prefix}.monthly_salary_cents",
            required=hourly_rate_cents == 0,
        ),
        hourly_rate_cents=hourly_rate_cents,
        system_role=parse_enum(
            SystemRole, _get(record, "system_role") or "EMPLOYEE", f"{field_prefix}.system_role"
        ),
    )


def _optional_rate(payload: Mapping[str, Any], key: str) -> Decimal | None:
    if payload.get(key) is None:
        return None
    return parse_rate(payload[key], key)


def parse_rates(
    payload: Mapping[str, Any],
    version: int,
    effective_from: date | None = None,
) -> RatesConfiguration:
    """Build a RatesConfiguration from a stored rules payload.

    Bands must be in ascending order with only the last band open-ended.
    """
    bands_raw = payload.get("paye_bands")
    if not bands_raw:
        raise ValidationError("at least one PAYE band is required", "paye_bands")

    bands: list[PayeBand] = []
    previous_limit = 0
    for idx, band in enumerate(bands_raw):
        limit = band.get("upper_limit_cents")
        is_last = idx == len(bands_raw) - 1
        if limit is None:
            if not is_last:
                raise ValidationError("only the last band may be open-ended", f"paye_bands[{idx}]")
        else:
            limit = parse_cents(limit, f"paye_bands[{idx}].upper_limit_cents")
            if limit <= previous_limit:
                raise ValidationError("band limits must be ascending", f"paye_bands[{idx}]")
            previous_limit = limit
        bands.append(
            PayeBand(
                upper_limit_cents=limit,
                rate=parse_rate(band.get("rate"), f"paye_bands[{idx}].rate"),
            )
        )

    tier1 = parse_cents(payload.get("nssf_tier1_limit_cents"), "nssf_tier1_limit_cents")
    tier2 = parse_cents(payload.get("nssf_tier2_limit_cents"), "nssf_tier2_limit_cents")
    if tier2 < tier1:
        raise ValidationError("tier II limit is below tier I limit", "nssf_tier2_limit_cents")

    return RatesConfiguration(
        version=version,
        paye_bands=tuple(bands),
        personal_relief_cents=parse_cents(
            payload.get("personal_relief_cents"), "personal_relief_cents"
        ),
        nssf_tier1_limit_cents=tier1,
        nssf_tier2_limit_cents=tier2,
        nssf_employee_rate=parse_rate(payload.get("nssf_employee_rate"), "nssf_employee_rate"),
        nssf_employer_rate=parse_rate(payload.get("nssf_employer_rate"), "nssf_employer_rate"),
        shif_rate=parse_rate(payload.get("shif_rate"), "shif_rate"),
        shif_minimum_cents=parse_cents(
            payload.get("shif_minimum_cents"), "shif_minimum_cents", required=False
        ),
        housing_levy_rate=parse_rate(payload.get("housing_levy_rate"), "housing_levy_rate"),
        nssf_tier2_employee_rate=_optional_rate(payload, "nssf_tier2_employee_rate"),
        nssf_tier2_employer_rate=_optional_rate(payload, "nssf_tier2_employer_rate"),
        effective_from=effective_from,
    )
