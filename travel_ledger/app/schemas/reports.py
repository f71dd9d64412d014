"""
Report Schemas.

Read-only statement shapes returned by the report aggregator.
"""

import datetime as dt
from decimal import Decimal
from pydantic import BaseModel
from typing import List, Optional
from travel_ledger.app.models.enums import AccountType, VoucherType


class IntegrityAlarm(BaseModel):
    """Flagged when the books do not reconcile. Indicates data corruption, not a request failure."""
    kind: str
    difference: Decimal
    message: str


class TrialBalanceRow(BaseModel):
    account_id: str
    code: str
    name: str
    type: AccountType
    debit: Decimal
    credit: Decimal


class TrialBalanceReport(BaseModel):
    rows: List[TrialBalanceRow]
    total_debit: Decimal
    total_credit: Decimal
    difference: Decimal
    integrity_alarm: Optional[IntegrityAlarm] = None
    degraded: bool = False


class IncomeLine(BaseModel):
    type: VoucherType
    amount: Decimal


class ProfitAndLossReport(BaseModel):
    from_date: Optional[dt.date]
    to_date: Optional[dt.date]
    income: Decimal
    income_by_type: List[IncomeLine]
    expenses: Decimal
    net_profit: Decimal
    degraded: bool = False


class BalanceSheetLine(BaseModel):
    account_id: str
    code: Optional[str]
    name: str
    type: AccountType
    amount: Decimal


class BalanceSheetReport(BaseModel):
    assets: List[BalanceSheetLine]
    liabilities: List[BalanceSheetLine]
    equity: List[BalanceSheetLine]
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    current_earnings: Decimal
    total_liabilities_and_equity: Decimal
    integrity_alarm: Optional[IntegrityAlarm] = None
    degraded: bool = False


class GeneralLedgerRow(BaseModel):
    entry_id: str
    date: dt.date
    voucher_id: Optional[str]
    voucher_num: str
    description: Optional[str]
    debit: Decimal
    credit: Decimal
    balance_after: Decimal


class GeneralLedgerReport(BaseModel):
    account_id: str
    code: Optional[str] = None
    name: Optional[str] = None
    type: Optional[AccountType] = None
    from_date: Optional[dt.date]
    to_date: Optional[dt.date]
    brought_forward: Decimal
    rows: List[GeneralLedgerRow]
    closing_balance: Decimal
    degraded: bool = False


class DashboardStats(BaseModel):
    """Headline figures for the dashboard."""
    total_receivables: Decimal
    total_payables: Decimal
    total_income: Decimal
    total_cash: Decimal
    degraded: bool = False


class BalanceDrift(BaseModel):
    account_id: str
    name: str
    stored_balance: Decimal
    ledger_balance: Decimal


class UnbalancedVoucher(BaseModel):
    voucher_id: str
    voucher_num: str
    total_amount_pkr: Decimal
    total_debit: Decimal
    total_credit: Decimal


class IntegrityReport(BaseModel):
    """Result of re-deriving every stored aggregate from the raw entries."""
    ok: bool
    drifted_accounts: List[BalanceDrift]
    unbalanced_vouchers: List[UnbalancedVoucher]
    orphan_entry_ids: List[str]
    degraded: bool = False
