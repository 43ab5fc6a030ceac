"""Payroll calculation engine."""

from workforce_payroll.calculators.allowances import AllowanceLedger
from workforce_payroll.calculators.base_pay import BasePayCalculator, round_cents
from workforce_payroll.calculators.engine import PayrollEngine
from workforce_payroll.calculators.statutory import StatutoryDeductionEngine
from workforce_payroll.calculators.units import UnitsAggregator

__all__ = [
    "PayrollEngine",
    "AllowanceLedger",
    "BasePayCalculator",
    "StatutoryDeductionEngine",
    "UnitsAggregator",
    "round_cents",
]
