"""Payroll period and entry models."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workforce_payroll.calculators.types import Allowance, DeductionDetails
from workforce_payroll.models.base import Base, TimestampMixin


class PayrollPeriod(Base, TimestampMixin):
    """A payroll period owned by an organization.

    Draft until finalized. Finalize is one-way; archive is an orthogonal,
    reversible visibility flag. ``version`` is the optimistic concurrency
    token bumped by every period-wide write.
    """

    __tablename__ = "payroll_period"

    period_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    is_finalized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finalized_by: Mapped[str | None] = mapped_column(String, nullable=True)

    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    archived_by: Mapped[str | None] = mapped_column(String, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="payroll_period_dates_check"),
    )

    # Relationships
    entries: Mapped[list[PayrollEntry]] = relationship(
        back_populates="period",
        cascade="all, delete-orphan",
        order_by="PayrollEntry.staff_name",
    )

    @property
    def status(self) -> str:
        return "finalized" if self.is_finalized else "draft"

    @property
    def month_units(self) -> int:
        """Inclusive day count of the period."""
        return (self.end_date - self.start_date).days + 1

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class PayrollEntry(Base, TimestampMixin):
    """Computed pay for one staff member in one period."""

    __tablename__ = "payroll_entry"

    entry_id: Mapped[UUID] = mapped_column(primary_key=True)
    period_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_period.period_id", ondelete="CASCADE"),
        nullable=False,
    )
    organization_id: Mapped[UUID] = mapped_column(nullable=False)
    staff_id: Mapped[UUID] = mapped_column(nullable=False)
    staff_name: Mapped[str] = mapped_column(String, nullable=False)
    pay_method: Mapped[str] = mapped_column(String, nullable=False)
    monthly_salary_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    # Units
    worked_units: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    paid_leave_units: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unpaid_leave_units: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    absent_units: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    month_units: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Money (cents)
    payable_base_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    allowances: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    allowances_total_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    gross_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    paye_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    nssf_employee_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    nssf_employer_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    shif_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    housing_levy_employee_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    housing_levy_employer_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    deductions_total_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    net_pay_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    # Review flagging
    needs_review: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    review_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Paid stamp (last mutation only)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_by: Mapped[str | None] = mapped_column(String, nullable=True)

    # Traceability
    rates_version: Mapped[int | None] = mapped_column(Integer, nullable=True)
    calculation_hash: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("period_id", "staff_id", name="payroll_entry_period_staff_unique"),
        CheckConstraint("net_pay_cents >= 0", name="payroll_entry_net_non_negative"),
    )

    # Relationships
    period: Mapped[PayrollPeriod] = relationship(back_populates="entries")

    @property
    def paid_units(self) -> int:
        return self.worked_units + self.paid_leave_units

    @property
    def deduction_details(self) -> DeductionDetails:
        return DeductionDetails(
            paye_cents=self.paye_cents,
            nssf_employee_cents=self.nssf_employee_cents,
            nssf_employer_cents=self.nssf_employer_cents,
            shif_cents=self.shif_cents,
            housing_levy_employee_cents=self.housing_levy_employee_cents,
            housing_levy_employer_cents=self.housing_levy_employer_cents,
        )

    @property
    def allowance_items(self) -> list[Allowance]:
        return [
            Allowance(amount_cents=int(a["amount_cents"]), notes=a.get("notes") or "")
            for a in (self.allowances or [])
        ]

    def financial_snapshot(self) -> dict[str, Any]:
        """Every financial field, for byte-level immutability checks."""
        return {
            "worked_units": self.worked_units,
            "paid_leave_units": self.paid_leave_units,
            "unpaid_leave_units": self.unpaid_leave_units,
            "absent_units": self.absent_units,
            "month_units": self.month_units,
            "payable_base_cents": self.payable_base_cents,
            "allowances": [dict(a) for a in (self.allowances or [])],
            "allowances_total_cents": self.allowances_total_cents,
            "gross_cents": self.gross_cents,
            **self.deduction_details.to_dict(),
            "deductions_total_cents": self.deductions_total_cents,
            "net_pay_cents": self.net_pay_cents,
            "is_paid": self.is_paid,
            "paid_by": self.paid_by,
        }
