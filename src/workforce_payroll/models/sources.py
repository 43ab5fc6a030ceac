"""Source records read by the payroll engine.

These tables are written by the attendance, leave, scheduling and staff
modules. The engine only reads them, except for locum attendance which the
locum tracker records against a shift assignment.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workforce_payroll.models.base import Base, TimestampMixin


class Staff(Base, TimestampMixin):
    """Staff member with pay profile fields.

    Pay profile fields are nullable upstream; they are validated before a
    payroll run uses them.
    """

    __tablename__ = "staff"

    staff_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    system_role: Mapped[str] = mapped_column(String, nullable=False, default="EMPLOYEE")
    staff_status: Mapped[str] = mapped_column(String, nullable=False, default="Active")
    pay_method: Mapped[str | None] = mapped_column(String, nullable=True)
    monthly_salary_cents: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    hourly_rate_cents: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class AttendanceRecord(Base, TimestampMixin):
    """Clock-in/out record for a staff member or an external locum."""

    __tablename__ = "attendance_record"

    record_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    staff_id: Mapped[UUID | None] = mapped_column(nullable=True, index=True)
    shift_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("shift.shift_id", ondelete="SET NULL"),
        nullable=True,
    )
    shift_assignment_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("shift_assignment.assignment_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    clock_in: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    clock_out: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_hours: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False)
    is_external: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    external_locum_name: Mapped[str | None] = mapped_column(String, nullable=True)
    recorded_by: Mapped[str | None] = mapped_column(String, nullable=True)


class LeaveRecord(Base, TimestampMixin):
    """Leave request covering an inclusive date range."""

    __tablename__ = "leave_record"

    leave_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    staff_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="Pending")

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="leave_record_dates_check"),
    )


class Shift(Base, TimestampMixin):
    """A scheduled shift at a location."""

    __tablename__ = "shift"

    shift_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    shift_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    location_name: Mapped[str | None] = mapped_column(String, nullable=True)
    role_required: Mapped[str | None] = mapped_column(String, nullable=True)

    # Relationships
    assignments: Mapped[list[ShiftAssignment]] = relationship(
        back_populates="shift",
        cascade="all, delete-orphan",
    )


class ShiftAssignment(Base, TimestampMixin):
    """Assignment of a staff member or an external locum to a shift."""

    __tablename__ = "shift_assignment"

    assignment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    shift_id: Mapped[UUID] = mapped_column(
        ForeignKey("shift.shift_id", ondelete="CASCADE"),
        nullable=False,
    )
    staff_id: Mapped[UUID | None] = mapped_column(nullable=True)
    is_locum: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    locum_name: Mapped[str | None] = mapped_column(String, nullable=True)
    rate_cents: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    # Relationships
    shift: Mapped[Shift] = relationship(back_populates="assignments")
