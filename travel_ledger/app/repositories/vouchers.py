"""
SQL voucher repository. Headers only; no business logic.
"""

from datetime import date
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from travel_ledger.app.models.enums import VoucherStatus, VoucherType
from travel_ledger.app.models.voucher import Voucher


class SqlVoucherRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, voucher_id: str) -> Optional[Voucher]:
        return await self.session.get(Voucher, voucher_id, populate_existing=True)

    async def get_by_number(self, voucher_num: str) -> Optional[Voucher]:
        result = await self.session.execute(select(Voucher).where(Voucher.voucher_num == voucher_num))
        return result.scalar_one_or_none()

    async def list(
        self,
        voucher_type: Optional[VoucherType] = None,
        status: Optional[VoucherStatus] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> List[Voucher]:
        query = select(Voucher).order_by(desc(Voucher.date), desc(Voucher.created_at))
        if voucher_type:
            query = query.where(Voucher.type == voucher_type)
        if status:
            query = query.where(Voucher.status == status)
        if from_date:
            query = query.where(Voucher.date >= from_date)
        if to_date:
            query = query.where(Voucher.date <= to_date)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def add(self, voucher: Voucher) -> Voucher:
        self.session.add(voucher)
        await self.session.flush()
        return voucher

    async def delete(self, voucher: Voucher) -> None:
        await self.session.delete(voucher)
        await self.session.flush()

    async def numbers(self, voucher_ids: Iterable[str]) -> Dict[str, str]:
        """Map voucher id -> voucher number, for resolving entry labels at read time."""
        ids = {voucher_id for voucher_id in voucher_ids if voucher_id}
        if not ids:
            return {}
        result = await self.session.execute(
            select(Voucher.id, Voucher.voucher_num).where(Voucher.id.in_(ids))
        )
        return {row.id: row.voucher_num for row in result}
