"""
Database snapshot schemas for export and import.
"""

import datetime as dt
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional, List
from travel_ledger.app.models.enums import AccountType, Currency, VoucherStatus, VoucherType
from travel_ledger.app.schemas.settings import AppConfigResponse

SNAPSHOT_VERSION = "4.0"


class SnapshotEntry(BaseModel):
    id: str
    date: dt.date
    voucher_id: Optional[str] = None
    opening_for_account_id: Optional[str] = None
    description: Optional[str] = None
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class SnapshotAccount(BaseModel):
    id: str
    code: Optional[str] = None
    name: str
    type: AccountType
    currency: Currency = Currency.PKR
    cell: Optional[str] = None
    location: Optional[str] = None
    balance: Decimal
    ledger: List[SnapshotEntry] = Field(default_factory=list)


class SnapshotVoucher(BaseModel):
    id: str
    type: VoucherType
    voucher_num: str
    date: dt.date
    currency: Currency
    roe: Decimal
    total_amount_pkr: Decimal
    description: str = ""
    status: VoucherStatus = VoucherStatus.POSTED
    reference: Optional[str] = None
    customer_id: Optional[str] = None
    vendor_id: Optional[str] = None
    details: Optional[dict] = None

    class Config:
        from_attributes = True


class DatabaseSnapshot(BaseModel):
    """Full export: `{accounts, vouchers, config}` plus export metadata."""
    accounts: List[SnapshotAccount]
    vouchers: List[SnapshotVoucher]
    config: AppConfigResponse
    export_date: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))
    version: str = SNAPSHOT_VERSION


class ImportResult(BaseModel):
    accounts: int
    vouchers: int
    entries: int
