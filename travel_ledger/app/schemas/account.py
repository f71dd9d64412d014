"""
Account Pydantic schemas.

Defines request and response models for account registration and ledgers.
"""

import datetime as dt
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional, List
from travel_ledger.app.models.enums import AccountType, Currency


class AccountCreate(BaseModel):
    """Schema for registering a new account."""
    name: str = Field(..., min_length=1, max_length=200)
    type: AccountType
    cell: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=200)
    opening_balance: Decimal = Field(Decimal("0"), description="PKR, must not be negative")
    is_debit_natured: bool = True
    code: Optional[str] = Field(None, max_length=20)
    currency: Currency = Currency.PKR


class AccountUpdate(BaseModel):
    """Schema for editing an account profile. Balance and type are not editable."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    cell: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=200)
    code: Optional[str] = Field(None, max_length=20)
    currency: Optional[Currency] = None


class AccountResponse(BaseModel):
    """Schema for account response."""
    id: str
    code: Optional[str]
    name: str
    type: AccountType
    currency: Currency
    cell: Optional[str]
    location: Optional[str]
    balance: Decimal
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class LedgerEntryResponse(BaseModel):
    """One ledger line with its read-time running balance."""
    id: str
    date: dt.date
    voucher_id: Optional[str]
    voucher_num: str
    description: Optional[str]
    debit: Decimal
    credit: Decimal
    balance_after: Decimal


class AccountWithLedgerResponse(AccountResponse):
    """Account with its date-ordered entries."""
    ledger: List[LedgerEntryResponse]


class AccountListResponse(BaseModel):
    """Schema for account list."""
    accounts: List[AccountWithLedgerResponse | AccountResponse]
    total: int
