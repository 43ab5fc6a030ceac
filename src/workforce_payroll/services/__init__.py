"""Payroll services."""

from workforce_payroll.services.capabilities import PayrollCapabilities
from workforce_payroll.services.export_service import ExportService, PayslipView
from workforce_payroll.services.locum_service import LocumPayoutTracker
from workforce_payroll.services.period_service import PaidToggleAudit, PayrollPeriodService
from workforce_payroll.services.rates_service import StatutoryRatesService
from workforce_payroll.services.state_machine import PeriodStateMachine, PeriodStatus

__all__ = [
    "ExportService",
    "LocumPayoutTracker",
    "PaidToggleAudit",
    "PayrollCapabilities",
    "PayrollPeriodService",
    "PayslipView",
    "PeriodStateMachine",
    "PeriodStatus",
    "StatutoryRatesService",
]
