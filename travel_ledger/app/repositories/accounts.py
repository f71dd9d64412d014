"""
SQL account repository.
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from travel_ledger.app.models.account import Account
from travel_ledger.app.models.enums import AccountType
from travel_ledger.app.models.ledger_entry import LedgerEntry
from travel_ledger.app.models.voucher import Voucher


class SqlAccountRepository:
    """Accounts table access. The stored balance is never assigned, only incremented."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, account_id: str) -> Optional[Account]:
        # populate_existing: balances change through UPDATE statements behind the identity map
        return await self.session.get(Account, account_id, populate_existing=True)

    async def get_by_code(self, code: str) -> Optional[Account]:
        result = await self.session.execute(
            select(Account).where(Account.code == code).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list(self, account_type: Optional[AccountType] = None) -> List[Account]:
        query = select(Account).order_by(Account.code, Account.name).execution_options(populate_existing=True)
        if account_type:
            query = query.where(Account.type == account_type)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def add(self, account: Account) -> Account:
        self.session.add(account)
        await self.session.flush()
        return account

    async def delete(self, account: Account) -> None:
        await self.session.delete(account)
        await self.session.flush()

    async def apply_delta(self, account_id: str, delta: Decimal) -> None:
        """Atomic `balance = balance + delta`; safe under concurrent writers."""
        await self.session.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(balance=Account.balance + delta)
            .execution_options(synchronize_session=False)
        )

    async def voucher_reference_count(self, account_id: str) -> int:
        """Vouchers naming the account as a party, plus voucher entries posted to it."""
        parties = await self.session.execute(
            select(func.count(Voucher.id)).where(
                or_(Voucher.customer_id == account_id, Voucher.vendor_id == account_id)
            )
        )
        entries = await self.session.execute(
            select(func.count(LedgerEntry.id)).where(
                LedgerEntry.account_id == account_id,
                LedgerEntry.voucher_id.is_not(None),
            )
        )
        return parties.scalar_one() + entries.scalar_one()
