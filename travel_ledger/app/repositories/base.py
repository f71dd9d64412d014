"""
Repository capability interfaces.

The posting engine and report aggregator only talk to these protocols, never
to a session directly, so an in-memory fake can stand in for the database.
"""

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from travel_ledger.app.models.account import Account
from travel_ledger.app.models.app_config import AppConfig
from travel_ledger.app.models.enums import AccountType, VoucherStatus, VoucherType
from travel_ledger.app.models.ledger_entry import LedgerEntry
from travel_ledger.app.models.voucher import Voucher


class AccountRepository(Protocol):
    async def get(self, account_id: str) -> Optional[Account]: ...

    async def get_by_code(self, code: str) -> Optional[Account]: ...

    async def list(self, account_type: Optional[AccountType] = None) -> List[Account]: ...

    async def add(self, account: Account) -> Account: ...

    async def delete(self, account: Account) -> None: ...

    async def apply_delta(self, account_id: str, delta: Decimal) -> None: ...

    async def voucher_reference_count(self, account_id: str) -> int: ...


class LedgerRepository(Protocol):
    async def insert(self, entries: Sequence[LedgerEntry]) -> None: ...

    async def remove(self, entries: Sequence[LedgerEntry]) -> None: ...

    async def for_voucher(self, voucher_id: str) -> List[LedgerEntry]: ...

    async def for_account(
        self,
        account_id: str,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> List[LedgerEntry]: ...

    async def opening_pair(self, account_id: str) -> List[LedgerEntry]: ...

    async def foreign_contra_count(self, account_id: str) -> int: ...

    async def all(self) -> List[LedgerEntry]: ...


class VoucherRepository(Protocol):
    async def get(self, voucher_id: str) -> Optional[Voucher]: ...

    async def get_by_number(self, voucher_num: str) -> Optional[Voucher]: ...

    async def list(
        self,
        voucher_type: Optional[VoucherType] = None,
        status: Optional[VoucherStatus] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> List[Voucher]: ...

    async def add(self, voucher: Voucher) -> Voucher: ...

    async def delete(self, voucher: Voucher) -> None: ...

    async def numbers(self, voucher_ids: Iterable[str]) -> Dict[str, str]: ...


class ConfigRepository(Protocol):
    async def get(self) -> Optional[AppConfig]: ...

    async def save(self, config: AppConfig) -> AppConfig: ...
