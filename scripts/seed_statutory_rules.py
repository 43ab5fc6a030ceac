"""Seed script for the initial Kenya statutory rules.

Run with:
    python scripts/seed_statutory_rules.py

Creates the database schema if needed and publishes version 1 of the
statutory rules (PAYE, NSSF, SHIF, Housing Levy) when none exists.
"""

from __future__ import annotations

import asyncio

from workforce_payroll.database import create_schema, get_session, init_db
from workforce_payroll.services import StatutoryRatesService


async def main():
    """Run seed script."""
    print("Seeding statutory rules...")

    engine, _ = init_db()
    await create_schema(engine)

    async with get_session() as session:
        rules = await StatutoryRatesService(session).get_current_rules()

    print(f"Active rules version: {rules.version}")
    print("\nDone! Statutory rules seeded successfully.")


if __name__ == "__main__":
    asyncio.run(main())
