"""
Chart of accounts seeding.

Runs on startup against an empty accounts table. The cash/bank ids match the
default config's bank list so bank selections resolve to real accounts.
"""

import logging

from travel_ledger.app.db.unit_of_work import UnitOfWork, UnitOfWorkFactory
from travel_ledger.app.models.account import Account
from travel_ledger.app.models.enums import AccountType
from travel_ledger.app.services.config_store import load_config

logger = logging.getLogger("travel_ledger.seeding")

STANDARD_CHART = [
    # Assets
    ("cash-hand", "1001", "Cash in Hand", AccountType.CASH_BANK),
    ("bank1", "1002", "Al Rajhi Bank", AccountType.CASH_BANK),
    ("bank2", "1003", "Meezan Bank", AccountType.CASH_BANK),
    ("ar-customers", "1010", "Accounts Receivable (Customers)", AccountType.CUSTOMER),
    ("adv-vendors", "1015", "Advance to Vendors", AccountType.VENDOR),
    # Liabilities
    ("ap-vendors", "2001", "Accounts Payable (Vendors)", AccountType.VENDOR),
    ("adv-customers", "2010", "Advance from Customers", AccountType.CUSTOMER),
    # Equity (3001 absorbs opening balances)
    ("reserve-fund", "3001", "General Reserve Fund", AccountType.EQUITY),
    ("owners-capital", "3005", "Owner's Capital", AccountType.EQUITY),
    # Income
    ("rev-hotels", "4001", "Revenue from Hotel Services", AccountType.REVENUE),
    ("rev-transport", "4002", "Revenue from Transport", AccountType.REVENUE),
    ("rev-visa", "4003", "Revenue from Visa Services", AccountType.REVENUE),
    ("rev-tickets", "4004", "Revenue from Tickets", AccountType.REVENUE),
    # Expenses
    ("exp-petty", "5001", "Petty Cash Expenses", AccountType.EXPENSE),
    ("exp-office", "5002", "Office Expenses", AccountType.EXPENSE),
    ("exp-comm", "5003", "Commission Paid", AccountType.EXPENSE),
]


async def seed_chart_of_accounts(uow: UnitOfWork) -> int:
    """Insert the standard chart when no accounts exist. Returns the number created."""
    if await uow.accounts.list():
        return 0

    for account_id, code, name, account_type in STANDARD_CHART:
        await uow.accounts.add(Account(id=account_id, code=code, name=name, type=account_type))
    return len(STANDARD_CHART)


async def seed_database(uow_factory: UnitOfWorkFactory, with_chart: bool = True) -> None:
    """Make sure the config row exists and, optionally, the standard chart of accounts."""
    async with uow_factory() as uow:
        await load_config(uow)
        created = await seed_chart_of_accounts(uow) if with_chart else 0
        await uow.commit()

    if created:
        logger.info("Seeded %d standard accounts", created)
