"""
Database seeding script for the standard chart of accounts.

Creates the tables, the app config row and the standard accounts (cash,
banks, receivables, payables, reserve 3001, revenue and expense heads).
Run this script after the database is set up but before first use.
"""

import asyncio

from travel_ledger.app.db.session import engine, Base, AsyncSessionLocal
from travel_ledger.app.db.unit_of_work import make_uow_factory
from travel_ledger.app.services.seeding import STANDARD_CHART, seed_database

# Register models with Base
from travel_ledger.app.models import account, voucher, ledger_entry, app_config, audit_log  # noqa: F401


async def seed_accounts():
    """
    Seed the chart of accounts.

    Skips the chart if any account already exists.
    """
    print("🌱 Starting chart of accounts seeding...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    uow_factory = make_uow_factory(AsyncSessionLocal)
    await seed_database(uow_factory)

    async with uow_factory() as uow:
        accounts = await uow.accounts.list()

    print(f"✅ {len(accounts)} accounts present")
    for code, name in sorted((a.code or "", a.name) for a in accounts)[:len(STANDARD_CHART)]:
        print(f"   {code:>6}  {name}")
    print("\n🎉 Seeding complete!")


if __name__ == "__main__":
    asyncio.run(seed_accounts())
