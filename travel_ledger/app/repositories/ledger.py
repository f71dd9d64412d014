"""
SQL ledger repository.

Entry rows and the account balance aggregate move together: every insert or
removal applies the matching per-account delta in the same transaction.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from travel_ledger.app.models.ledger_entry import LedgerEntry
from travel_ledger.app.repositories.accounts import SqlAccountRepository

LEDGER_ORDER = (LedgerEntry.date, LedgerEntry.created_at, LedgerEntry.id)


def _deltas(entries: Sequence[LedgerEntry], sign: int) -> Dict[str, Decimal]:
    deltas: Dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    for entry in entries:
        deltas[entry.account_id] += sign * (Decimal(entry.debit) - Decimal(entry.credit))
    return deltas


class SqlLedgerRepository:
    def __init__(self, session: AsyncSession, accounts: SqlAccountRepository):
        self.session = session
        self.accounts = accounts

    async def _apply(self, deltas: Dict[str, Decimal]) -> None:
        # Sorted so concurrent writers take row locks in the same order
        for account_id in sorted(deltas):
            if deltas[account_id]:
                await self.accounts.apply_delta(account_id, deltas[account_id])

    async def insert(self, entries: Sequence[LedgerEntry]) -> None:
        self.session.add_all(entries)
        await self.session.flush()
        await self._apply(_deltas(entries, 1))

    async def remove(self, entries: Sequence[LedgerEntry]) -> None:
        for entry in entries:
            await self.session.delete(entry)
        await self.session.flush()
        await self._apply(_deltas(entries, -1))

    async def for_voucher(self, voucher_id: str) -> List[LedgerEntry]:
        result = await self.session.execute(
            select(LedgerEntry).where(LedgerEntry.voucher_id == voucher_id).order_by(*LEDGER_ORDER)
        )
        return list(result.scalars().all())

    async def for_account(
        self,
        account_id: str,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> List[LedgerEntry]:
        query = select(LedgerEntry).where(LedgerEntry.account_id == account_id)
        if from_date:
            query = query.where(LedgerEntry.date >= from_date)
        if to_date:
            query = query.where(LedgerEntry.date <= to_date)

        result = await self.session.execute(query.order_by(*LEDGER_ORDER))
        return list(result.scalars().all())

    async def opening_pair(self, account_id: str) -> List[LedgerEntry]:
        """Both legs of the account's opening balance (its own entry and the reserve contra)."""
        result = await self.session.execute(
            select(LedgerEntry).where(LedgerEntry.opening_for_account_id == account_id)
        )
        return list(result.scalars().all())

    async def foreign_contra_count(self, account_id: str) -> int:
        """Opening entries on this account that belong to other accounts' opening pairs."""
        result = await self.session.execute(
            select(func.count(LedgerEntry.id)).where(
                LedgerEntry.account_id == account_id,
                LedgerEntry.opening_for_account_id.is_not(None),
                LedgerEntry.opening_for_account_id != account_id,
            )
        )
        return result.scalar_one()

    async def all(self) -> List[LedgerEntry]:
        result = await self.session.execute(select(LedgerEntry).order_by(*LEDGER_ORDER))
        return list(result.scalars().all())
