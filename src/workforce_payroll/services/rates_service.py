"""Versioned statutory rates service."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_payroll.calculators.statutory import StatutoryDeductionEngine
from workforce_payroll.calculators.types import DeductionResult, RatesConfiguration
from workforce_payroll.calculators.validation import parse_cents, parse_rates
from workforce_payroll.errors import NotFoundError
from workforce_payroll.models import AuditEvent, StatutoryRuleVersion
from workforce_payroll.models.base import utcnow

logger = logging.getLogger(__name__)

# Kenya monthly statutory rules (2024-2025), amounts in cents
DEFAULT_KENYA_RULES: dict[str, Any] = {
    "paye_bands": [
        {"upper_limit_cents": 2_400_000, "rate": "0.10"},
        {"upper_limit_cents": 3_233_300, "rate": "0.25"},
        {"upper_limit_cents": 50_000_000, "rate": "0.30"},
        {"upper_limit_cents": 80_000_000, "rate": "0.325"},
        {"upper_limit_cents": None, "rate": "0.35"},
    ],
    "personal_relief_cents": 240_000,
    "nssf_tier1_limit_cents": 600_000,
    "nssf_tier2_limit_cents": 1_800_000,
    "nssf_employee_rate": "0.06",
    "nssf_employer_rate": "0.06",
    "shif_rate": "0.0275",
    "shif_minimum_cents": 0,
    "housing_levy_rate": "0.015",
}

# Nil UUID keys audit rows for the global rules table
RULES_ENTITY_ID = UUID(int=0)


def to_configuration(row: StatutoryRuleVersion) -> RatesConfiguration:
    """Validate a stored rules row into the engine's rates type."""
    return parse_rates(row.payload_json, version=row.version, effective_from=row.effective_from)


class StatutoryRatesService:
    """Service for reading and publishing statutory rate versions.

    Operations:
    - get_current_rules: Active version, seeding the defaults on first use
    - get_version: A specific version, for recomputing old entries
    - get_history: All versions, newest first
    - publish_rules: New version from updates, archiving the previous one
    - revert_to_defaults: New version carrying DEFAULT_KENYA_RULES
    - preview_deductions: Deductions for a salary under the active rules
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_current_rules(self) -> StatutoryRuleVersion:
        result = await self.session.execute(
            select(StatutoryRuleVersion)
            .where(StatutoryRuleVersion.is_active.is_(True))
            .order_by(StatutoryRuleVersion.version.desc())
            .limit(1)
        )
        current = result.scalar_one_or_none()
        if current is not None:
            return current

        latest = await self._latest_version_number()
        if latest is not None:
            raise NotFoundError("active statutory rules", "KE")

        logger.info("No statutory rules found, creating defaults")
        return await self._insert_version(
            payload=DEFAULT_KENYA_RULES,
            version=1,
            effective_from=date(2024, 1, 1),
            actor="system",
            notes="Initial Kenya statutory rules for 2024-2025",
        )

    async def get_current(self) -> RatesConfiguration:
        return to_configuration(await self.get_current_rules())

    async def get_version(self, version: int) -> RatesConfiguration:
        result = await self.session.execute(
            select(StatutoryRuleVersion).where(StatutoryRuleVersion.version == version)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError("statutory rules version", version)
        return to_configuration(row)

    async def get_history(self) -> list[StatutoryRuleVersion]:
        result = await self.session.execute(
            select(StatutoryRuleVersion).order_by(StatutoryRuleVersion.version.desc())
        )
        return list(result.scalars().all())

    async def publish_rules(
        self,
        updates: dict[str, Any],
        actor: str | None = None,
        effective_from: date | None = None,
        notes: str | None = None,
    ) -> StatutoryRuleVersion:
        """Publish a new version from field updates over the active payload.

        The merged payload is validated before the previous version is
        archived, so a bad update never leaves the table without an active
        version.
        """
        current = await self.get_current_rules()
        payload = {**current.payload_json, **updates}
        effective = effective_from or utcnow().date()
        parse_rates(payload, version=current.version + 1, effective_from=effective)

        return await self._replace_active(current, payload, effective, actor, notes)

    async def revert_to_defaults(self, actor: str | None = None) -> StatutoryRuleVersion:
        current = await self.get_current_rules()
        return await self._replace_active(
            current,
            DEFAULT_KENYA_RULES,
            utcnow().date(),
            actor,
            "Reverted to default statutory rules",
        )

    async def preview_deductions(
        self, monthly_salary_cents: int, allowances_cents: int = 0
    ) -> DeductionResult:
        """Deductions for a salary plus allowances under the active rules."""
        gross = parse_cents(monthly_salary_cents, "monthly_salary_cents") + parse_cents(
            allowances_cents, "allowances_cents", required=False
        )
        return StatutoryDeductionEngine().calculate(gross, await self.get_current())

    async def _replace_active(
        self,
        current: StatutoryRuleVersion,
        payload: dict[str, Any],
        effective_from: date,
        actor: str | None,
        notes: str | None,
    ) -> StatutoryRuleVersion:
        await self.session.execute(
            update(StatutoryRuleVersion)
            .where(StatutoryRuleVersion.rule_version_id == current.rule_version_id)
            .values(is_active=False, effective_until=effective_from)
        )
        current.is_active = False
        current.effective_until = effective_from

        new_version = await self._insert_version(
            payload=payload,
            version=current.version + 1,
            effective_from=effective_from,
            actor=actor,
            notes=notes,
        )
        logger.info(
            "Published statutory rules version %s (previous %s archived)",
            new_version.version,
            current.version,
        )
        return new_version

    async def _insert_version(
        self,
        payload: dict[str, Any],
        version: int,
        effective_from: date,
        actor: str | None,
        notes: str | None,
    ) -> StatutoryRuleVersion:
        row = StatutoryRuleVersion(
            version=version,
            effective_from=effective_from,
            is_active=True,
            payload_json=dict(payload),
            updated_by=actor,
            notes=notes,
        )
        self.session.add(row)
        self.session.add(
            AuditEvent(
                organization_id=RULES_ENTITY_ID,
                actor=actor,
                entity_type="statutory_rules",
                entity_id=RULES_ENTITY_ID,
                action=f"published:v{version}",
                details_json={"notes": notes} if notes else None,
            )
        )
        await self.session.flush()
        return row

    async def _latest_version_number(self) -> int | None:
        result = await self.session.execute(
            select(StatutoryRuleVersion.version)
            .order_by(StatutoryRuleVersion.version.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
