"""Payroll calculation engine - main orchestrator."""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterable
from datetime import date
from typing import Any
from uuid import UUID

from workforce_payroll.calculators.allowances import AllowanceLedger
from workforce_payroll.calculators.base_pay import BasePayCalculator
from workforce_payroll.calculators.statutory import StatutoryDeductionEngine
from workforce_payroll.calculators.types import (
    Allowance,
    AttendanceInput,
    EntryCalculation,
    LeaveInput,
    OpenShiftPolicy,
    PayMethod,
    RatesConfiguration,
    StaffPayProfile,
    UnitCounts,
)
from workforce_payroll.calculators.units import UnitsAggregator
from workforce_payroll.config import Settings, get_settings
from workforce_payroll.errors import ComputationError

logger = logging.getLogger(__name__)


class PayrollEngine:
    """Pure payroll calculation engine.

    Calculation pipeline (stable order per staff member):
    1) Aggregate day units from attendance and approved leave
    2) Derive the payable base from the pay method
    3) Add allowances to get gross (= taxable) pay
    4) Compute statutory deductions from the rates version
    5) Clamp net at zero, flagging the entry for review

    The engine never touches the database. Callers load and validate the
    inputs and persist the returned EntryCalculation.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.units_aggregator = UnitsAggregator(
            standard_workday_hours=self.settings.standard_workday_hours,
            open_shift_policy=OpenShiftPolicy(self.settings.open_shift_policy),
        )
        self.base_pay = BasePayCalculator()
        self.statutory = StatutoryDeductionEngine()

    def calculate_entry(
        self,
        profile: StaffPayProfile,
        period_start: date,
        period_end: date,
        attendance: Iterable[AttendanceInput],
        leave: Iterable[LeaveInput],
        allowances: Iterable[Allowance],
        rates: RatesConfiguration,
    ) -> EntryCalculation:
        """Calculate one staff member's entry from source records."""
        units = self.units_aggregator.aggregate(
            profile.staff_id, period_start, period_end, attendance, leave
        )
        return self.price(
            staff_id=profile.staff_id,
            pay_method=profile.pay_method,
            monthly_salary_cents=profile.monthly_salary_cents,
            units=units,
            allowances=allowances,
            rates=rates,
        )

    def price(
        self,
        staff_id: UUID,
        pay_method: PayMethod,
        monthly_salary_cents: int,
        units: UnitCounts,
        allowances: Iterable[Allowance],
        rates: RatesConfiguration,
    ) -> EntryCalculation:
        """Turn known units and allowances into money.

        Also used after allowance edits, where units are already stored on
        the entry and only gross, deductions and net change.
        """
        calc = EntryCalculation(
            staff_id=staff_id,
            units=units,
            allowances=AllowanceLedger(allowances).items,
        )

        try:
            calc.payable_base_cents = self.base_pay.payable_base(
                pay_method,
                monthly_salary_cents,
                units.paid_units,
                units.month_units,
            )
        except ComputationError as e:
            logger.warning("Flagging staff %s for review: %s", staff_id, e)
            calc.review_reasons.append(str(e))

        calc.deductions = self.statutory.calculate(calc.gross_cents, rates)
        if calc.deductions.net_clamped:
            logger.warning(
                "Net pay for staff %s clamped to zero (gross %s, deductions %s)",
                staff_id,
                calc.gross_cents,
                calc.deductions.details.total_cents,
            )
            calc.review_reasons.append(
                "Deductions exceed gross pay; net pay clamped to zero"
            )

        return calc

    def calculation_hash(
        self,
        calc: EntryCalculation,
        pay_method: PayMethod,
        monthly_salary_cents: int,
        rates_version: int,
    ) -> str:
        """Fingerprint of every input and output of an entry calculation.

        Regeneration compares this to the stored hash and skips the write
        when nothing changed.
        """
        data = {
            "engine_version": self.settings.engine_version,
            "staff_id": str(calc.staff_id),
            "pay_method": pay_method.value,
            "monthly_salary_cents": monthly_salary_cents,
            "rates_version": rates_version,
            "units": {
                "worked": calc.units.worked_units,
                "paid_leave": calc.units.paid_leave_units,
                "unpaid_leave": calc.units.unpaid_leave_units,
                "absent": calc.units.absent_units,
                "month": calc.units.month_units,
            },
            "payable_base_cents": calc.payable_base_cents,
            "allowances": [a.to_dict() for a in calc.allowances],
            "deductions": calc.deductions.details.to_dict() if calc.deductions else {},
            "net_pay_cents": calc.deductions.net_pay_cents if calc.deductions else 0,
            "review": calc.review_reasons,
        }
        return _sha256_hex(data)

    @staticmethod
    def entry_id_for(period_id: UUID, staff_id: UUID) -> UUID:
        """Deterministic entry id, so regeneration never duplicates an entry."""
        data = {"period_id": str(period_id), "staff_id": str(staff_id)}
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])


def _sha256_hex(data: Any) -> str:
    json_str = json.dumps(data, sort_keys=True)
    return hashlib.sha256(json_str.encode()).hexdigest()
