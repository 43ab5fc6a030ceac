"""ORM models."""

from workforce_payroll.models.audit import AuditEvent
from workforce_payroll.models.base import Base, TimestampMixin
from workforce_payroll.models.payroll import PayrollEntry, PayrollPeriod
from workforce_payroll.models.rates import StatutoryRuleVersion
from workforce_payroll.models.sources import (
    AttendanceRecord,
    LeaveRecord,
    Shift,
    ShiftAssignment,
    Staff,
)

__all__ = [
    "AttendanceRecord",
    "AuditEvent",
    "Base",
    "LeaveRecord",
    "PayrollEntry",
    "PayrollPeriod",
    "Shift",
    "ShiftAssignment",
    "Staff",
    "StatutoryRuleVersion",
    "TimestampMixin",
]
