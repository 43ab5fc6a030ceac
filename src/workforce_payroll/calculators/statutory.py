"""Statutory deductions (PAYE, NSSF, SHIF, Housing Levy) from rate tables."""

from __future__ import annotations

from decimal import Decimal

from workforce_payroll.calculators.base_pay import apply_rate, round_cents
from workforce_payroll.calculators.types import (
    DeductionDetails,
    DeductionResult,
    RatesConfiguration,
)
from workforce_payroll.errors import ValidationError


class StatutoryDeductionEngine:
    """Calculates statutory deductions as a pure function of gross pay and rates.

    Taxable pay equals gross pay. Statutory contributions never reduce the
    PAYE base. Rate tables are always supplied by the caller, so a regulatory
    change is a new rates version, not a code change:

    {
        "paye_bands": [
            {"upper_limit_cents": 2400000, "rate": "0.10"},
            {"upper_limit_cents": 3233300, "rate": "0.25"},
            ...
            {"upper_limit_cents": null, "rate": "0.35"}
        ],
        "personal_relief_cents": 240000,
        "nssf_tier1_limit_cents": 600000,
        "nssf_tier2_limit_cents": 1800000,
        "nssf_employee_rate": "0.06",
        "nssf_employer_rate": "0.06",
        "shif_rate": "0.0275",
        "shif_minimum_cents": 0,
        "housing_levy_rate": "0.015",
        "nssf_tier2_employee_rate": "0.06"  (optional, defaults to nssf_employee_rate)
    }
    """

    def calculate(self, gross_cents: int, rates: RatesConfiguration) -> DeductionResult:
        """Compute the deduction breakdown and clamped net pay."""
        if isinstance(gross_cents, bool) or not isinstance(gross_cents, int):
            raise ValidationError(f"gross must be whole cents, got {gross_cents!r}", "gross_cents")
        if gross_cents < 0:
            raise ValidationError("gross cannot be negative", "gross_cents")

        nssf_employee, nssf_employer = self.calculate_nssf(gross_cents, rates)
        housing_employee, housing_employer = self.calculate_housing_levy(gross_cents, rates)

        details = DeductionDetails(
            paye_cents=self.calculate_paye(gross_cents, rates),
            nssf_employee_cents=nssf_employee,
            nssf_employer_cents=nssf_employer,
            shif_cents=self.calculate_shif(gross_cents, rates),
            housing_levy_employee_cents=housing_employee,
            housing_levy_employer_cents=housing_employer,
        )

        net = gross_cents - details.total_cents
        return DeductionResult(
            gross_cents=gross_cents,
            details=details,
            net_pay_cents=max(0, net),
            net_clamped=net < 0,
        )

    def calculate_paye(self, taxable_cents: int, rates: RatesConfiguration) -> int:
        """Progressive PAYE over the band table, less personal relief, floored at 0."""
        if taxable_cents <= 0:
            return 0

        gross_tax = Decimal("0")
        lower = 0

        for band in rates.paye_bands:
            if taxable_cents <= lower:
                break

            upper = band.upper_limit_cents if band.upper_limit_cents is not None else taxable_cents
            taxable_in_band = min(taxable_cents, upper) - lower
            if taxable_in_band > 0:
                gross_tax += Decimal(taxable_in_band) * band.rate
            lower = upper

        net_tax = gross_tax - Decimal(rates.personal_relief_cents)
        if net_tax <= 0:
            return 0
        return round_cents(net_tax)

    def calculate_nssf(self, gross_cents: int, rates: RatesConfiguration) -> tuple[int, int]:
        """Two-tier NSSF contribution as (employee, employer).

        Each tier applies its own rate to earnings capped at the tier limit.
        """
        if gross_cents <= 0:
            return 0, 0

        tier1_earnings = min(gross_cents, rates.nssf_tier1_limit_cents)
        tier2_earnings = max(
            0, min(gross_cents, rates.nssf_tier2_limit_cents) - rates.nssf_tier1_limit_cents
        )

        employee = apply_rate(tier1_earnings, rates.nssf_employee_rate) + apply_rate(
            tier2_earnings, rates.tier2_employee_rate
        )
        employer = apply_rate(tier1_earnings, rates.nssf_employer_rate) + apply_rate(
            tier2_earnings, rates.tier2_employer_rate
        )
        return employee, employer

    def calculate_shif(self, gross_cents: int, rates: RatesConfiguration) -> int:
        """Flat-rate SHIF, raised to the configured minimum for positive pay."""
        if gross_cents <= 0:
            return 0
        return max(apply_rate(gross_cents, rates.shif_rate), rates.shif_minimum_cents)

    def calculate_housing_levy(
        self, gross_cents: int, rates: RatesConfiguration
    ) -> tuple[int, int]:
        """Housing levy as (employee, matching employer) portions."""
        if gross_cents <= 0:
            return 0, 0
        levy = apply_rate(gross_cents, rates.housing_levy_rate)
        return levy, levy
