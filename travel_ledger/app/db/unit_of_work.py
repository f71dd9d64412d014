"""
Unit of work.

One database transaction wrapping a full engine operation. Nothing is
committed unless `commit()` is awaited. Leaving through an exception rolls
back; a clean exit detaches the loaded rows and discards uncommitted work.
"""

from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from travel_ledger.app.repositories.accounts import SqlAccountRepository
from travel_ledger.app.repositories.base import AccountRepository, ConfigRepository, LedgerRepository, VoucherRepository
from travel_ledger.app.repositories.config import SqlConfigRepository
from travel_ledger.app.repositories.ledger import SqlLedgerRepository
from travel_ledger.app.repositories.vouchers import SqlVoucherRepository


class UnitOfWork:
    """Session plus the repositories bound to it."""

    accounts: AccountRepository
    ledger: LedgerRepository
    vouchers: VoucherRepository
    config: ConfigRepository

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory
        self.session: AsyncSession = None

    async def __aenter__(self) -> "UnitOfWork":
        self.session = self._session_factory()
        self.accounts = SqlAccountRepository(self.session)
        self.ledger = SqlLedgerRepository(self.session, self.accounts)
        self.vouchers = SqlVoucherRepository(self.session)
        self.config = SqlConfigRepository(self.session)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        try:
            if exc_type is not None:
                await self.session.rollback()
            else:
                # Keep loaded rows readable after the block; close() discards any uncommitted work.
                self.session.expunge_all()
        finally:
            await self.session.close()

    async def commit(self) -> None:
        await self.session.commit()


UnitOfWorkFactory = Callable[[], UnitOfWork]


def make_uow_factory(session_factory: async_sessionmaker) -> UnitOfWorkFactory:
    """Bind a session factory; each call yields a fresh, unopened unit of work."""
    def factory() -> UnitOfWork:
        return UnitOfWork(session_factory)
    return factory
