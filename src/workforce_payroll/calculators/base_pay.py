"""Payable base amounts per pay method."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from workforce_payroll.calculators.types import PayMethod
from workforce_payroll.errors import ComputationError, ValidationError

ONE_CENT = Decimal("1")


def round_cents(amount: Decimal) -> int:
    """Round a cent amount half-up to a whole cent.

    Every division of money in the engine goes through this helper.
    """
    return int(amount.quantize(ONE_CENT, rounding=ROUND_HALF_UP))


def apply_rate(amount_cents: int, rate: Decimal) -> int:
    """Percentage of a cent amount, rounded half-up."""
    return round_cents(Decimal(amount_cents) * rate)


class BasePayCalculator:
    """Computes the salary portion of an entry before allowances."""

    @staticmethod
    def payable_base(
        pay_method: PayMethod,
        monthly_salary_cents: int,
        paid_units: int,
        month_units: int,
    ) -> int:
        """Return payable base cents.

        Fixed pays the full salary and ignores units. Prorated pays
        ``salary * paid_units / month_units`` rounded half-up to the cent.

        Raises:
            ComputationError: month_units is zero for a prorated entry
        """
        if monthly_salary_cents < 0:
            raise ValidationError("salary cannot be negative", "monthly_salary_cents")
        if paid_units < 0:
            raise ValidationError("paid units cannot be negative", "paid_units")

        if pay_method == PayMethod.FIXED:
            return monthly_salary_cents

        if pay_method == PayMethod.PRORATED:
            if month_units <= 0:
                raise ComputationError(
                    f"Cannot prorate salary over {month_units} month units"
                )
            return round_cents(
                Decimal(monthly_salary_cents) * Decimal(paid_units) / Decimal(month_units)
            )

        raise ValidationError(f"unsupported pay method {pay_method!r}", "pay_method")
