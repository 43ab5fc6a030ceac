"""Workforce payroll engine: units, statutory deductions and period lifecycle."""

__version__ = "0.1.0"
