"""
Report Aggregator (Domain Logic).

Read-only statements computed from one snapshot of accounts, entries and
vouchers taken in a single read transaction. A store failure on this path
degrades to empty figures flagged `degraded=True`; it never raises.
Reconciliation failures are reported as an `integrity_alarm` field.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from travel_ledger.app.core.config import settings
from travel_ledger.app.core.exceptions import ResourceNotFoundError
from travel_ledger.app.db.unit_of_work import UnitOfWorkFactory
from travel_ledger.app.models.account import Account
from travel_ledger.app.models.enums import AccountType, REVENUE_VOUCHER_TYPES, VoucherStatus, VoucherType
from travel_ledger.app.models.ledger_entry import LedgerEntry
from travel_ledger.app.models.voucher import Voucher
from travel_ledger.app.schemas.reports import (
    BalanceDrift,
    BalanceSheetLine,
    BalanceSheetReport,
    DashboardStats,
    GeneralLedgerReport,
    GeneralLedgerRow,
    IncomeLine,
    IntegrityAlarm,
    IntegrityReport,
    ProfitAndLossReport,
    TrialBalanceReport,
    TrialBalanceRow,
    UnbalancedVoucher,
)

logger = logging.getLogger("travel_ledger.reports")

ZERO = Decimal("0")
OPENING_VOUCHER_NUM = "OB-000"
READ_FAILURES = (SQLAlchemyError, OSError)


@dataclass
class LedgerSnapshot:
    accounts: List[Account] = field(default_factory=list)
    entries: List[LedgerEntry] = field(default_factory=list)
    vouchers: List[Voucher] = field(default_factory=list)
    degraded: bool = False


def entry_voucher_num(entry: LedgerEntry, numbers: Dict[str, str]) -> str:
    if entry.voucher_id is None:
        return OPENING_VOUCHER_NUM
    return numbers.get(entry.voucher_id, "N/A")


def with_running_balance(
    entries: Iterable[LedgerEntry],
    numbers: Dict[str, str],
    opening: Decimal = ZERO,
) -> List[dict]:
    """
    Chronological ledger rows with `balance_after`.

    Sorted by (date, created_at, id); the running balance is derived here and
    never stored.
    """
    ordered = sorted(entries, key=lambda e: (e.date, e.created_at, e.id))
    running = Decimal(opening)
    rows = []
    for entry in ordered:
        running += Decimal(entry.debit) - Decimal(entry.credit)
        rows.append({
            "id": entry.id,
            "date": entry.date,
            "voucher_id": entry.voucher_id,
            "voucher_num": entry_voucher_num(entry, numbers),
            "description": entry.description,
            "debit": Decimal(entry.debit),
            "credit": Decimal(entry.credit),
            "balance_after": running,
        })
    return rows


def _code_key(account: Account):
    return (account.code or "", account.name)


def _in_range(value: date, from_date: Optional[date], to_date: Optional[date]) -> bool:
    if from_date and value < from_date:
        return False
    if to_date and value > to_date:
        return False
    return True


class ReportAggregator:
    """Statements over the account and voucher stores."""

    def __init__(self, uow_factory: UnitOfWorkFactory, balance_epsilon: Decimal = settings.balance_epsilon):
        self.uow_factory = uow_factory
        self.balance_epsilon = balance_epsilon

    async def snapshot(self) -> LedgerSnapshot:
        try:
            async with self.uow_factory() as uow:
                accounts = await uow.accounts.list()
                entries = await uow.ledger.all()
                vouchers = await uow.vouchers.list()
        except READ_FAILURES as exc:
            logger.error("Report snapshot failed, serving empty figures: %s", exc)
            return LedgerSnapshot(degraded=True)
        return LedgerSnapshot(accounts, entries, vouchers)

    async def trial_balance(self) -> TrialBalanceReport:
        snap = await self.snapshot()

        rows = []
        total_debit = total_credit = ZERO
        for account in sorted(snap.accounts, key=_code_key):
            balance = Decimal(account.balance)
            debit = balance if balance > 0 else ZERO
            credit = -balance if balance < 0 else ZERO
            total_debit += debit
            total_credit += credit
            rows.append(TrialBalanceRow(
                account_id=account.id,
                code=account.code or "N/A",
                name=account.name,
                type=account.type,
                debit=debit,
                credit=credit,
            ))

        difference = abs(total_debit - total_credit)
        alarm = None
        if difference > self.balance_epsilon:
            alarm = IntegrityAlarm(
                kind="trial_balance",
                difference=difference,
                message=f"Trial balance is out by PKR {difference}",
            )
            logger.warning("Trial balance mismatch: debit %s, credit %s", total_debit, total_credit)

        return TrialBalanceReport(
            rows=rows,
            total_debit=total_debit,
            total_credit=total_credit,
            difference=difference,
            integrity_alarm=alarm,
            degraded=snap.degraded,
        )

    async def profit_and_loss(self, from_date: Optional[date] = None, to_date: Optional[date] = None) -> ProfitAndLossReport:
        snap = await self.snapshot()

        by_type: Dict[VoucherType, Decimal] = {t: ZERO for t in REVENUE_VOUCHER_TYPES}
        expenses = ZERO
        for voucher in snap.vouchers:
            if voucher.status != VoucherStatus.POSTED or not _in_range(voucher.date, from_date, to_date):
                continue
            if voucher.type in by_type:
                by_type[voucher.type] += Decimal(voucher.total_amount_pkr)
            elif voucher.type == VoucherType.PAYMENT:
                expenses += Decimal(voucher.total_amount_pkr)

        income = sum(by_type.values(), ZERO)
        return ProfitAndLossReport(
            from_date=from_date,
            to_date=to_date,
            income=income,
            income_by_type=[IncomeLine(type=t, amount=amount) for t, amount in by_type.items()],
            expenses=expenses,
            net_profit=income - expenses,
            degraded=snap.degraded,
        )

    async def balance_sheet(self) -> BalanceSheetReport:
        """
        Classify accounts by sign.

        Customers and cash/bank with a credit balance show as liabilities;
        vendors with a debit balance (advances) show as assets. Equity is
        shown credit-positive. Revenue and expense roll into current earnings.
        """
        snap = await self.snapshot()

        assets, liabilities, equity = [], [], []
        revenue = expense = ZERO
        for account in sorted(snap.accounts, key=_code_key):
            balance = Decimal(account.balance)

            def line(amount: Decimal) -> BalanceSheetLine:
                return BalanceSheetLine(
                    account_id=account.id, code=account.code, name=account.name, type=account.type, amount=amount,
                )

            if account.type in (AccountType.CUSTOMER, AccountType.CASH_BANK):
                if balance >= 0:
                    assets.append(line(balance))
                else:
                    liabilities.append(line(-balance))
            elif account.type == AccountType.VENDOR:
                if balance <= 0:
                    liabilities.append(line(-balance))
                else:
                    assets.append(line(balance))
            elif account.type == AccountType.EQUITY:
                equity.append(line(-balance))
            elif account.type == AccountType.REVENUE:
                revenue += -balance
            elif account.type == AccountType.EXPENSE:
                expense += balance

        total_assets = sum((l.amount for l in assets), ZERO)
        total_liabilities = sum((l.amount for l in liabilities), ZERO)
        total_equity = sum((l.amount for l in equity), ZERO)
        earnings = revenue - expense
        total_le = total_liabilities + total_equity + earnings

        alarm = None
        difference = abs(total_assets - total_le)
        if difference > self.balance_epsilon:
            alarm = IntegrityAlarm(
                kind="balance_sheet",
                difference=difference,
                message=f"Assets differ from liabilities + equity by PKR {difference}",
            )
            logger.warning("Balance sheet mismatch: assets %s, liabilities+equity %s", total_assets, total_le)

        return BalanceSheetReport(
            assets=assets,
            liabilities=liabilities,
            equity=equity,
            total_assets=total_assets,
            total_liabilities=total_liabilities,
            total_equity=total_equity,
            current_earnings=earnings,
            total_liabilities_and_equity=total_le,
            integrity_alarm=alarm,
            degraded=snap.degraded,
        )

    async def general_ledger(
        self,
        account_id: str,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> GeneralLedgerReport:
        """One account's entries with running balance; earlier entries are brought forward."""
        try:
            async with self.uow_factory() as uow:
                account = await uow.accounts.get(account_id)
                if account is None:
                    raise ResourceNotFoundError("Account", account_id)
                entries = await uow.ledger.for_account(account_id, to_date=to_date)
                numbers = await uow.vouchers.numbers(e.voucher_id for e in entries)
        except READ_FAILURES as exc:
            logger.error("General ledger read failed for %s: %s", account_id, exc)
            return GeneralLedgerReport(
                account_id=account_id, from_date=from_date, to_date=to_date,
                brought_forward=ZERO, rows=[], closing_balance=ZERO, degraded=True,
            )

        earlier = [e for e in entries if from_date and e.date < from_date]
        in_range = [e for e in entries if not (from_date and e.date < from_date)]
        brought_forward = sum((Decimal(e.debit) - Decimal(e.credit) for e in earlier), ZERO)

        rows = [
            GeneralLedgerRow(entry_id=row.pop("id"), **row)
            for row in with_running_balance(in_range, numbers, opening=brought_forward)
        ]
        return GeneralLedgerReport(
            account_id=account.id,
            code=account.code,
            name=account.name,
            type=account.type,
            from_date=from_date,
            to_date=to_date,
            brought_forward=brought_forward,
            rows=rows,
            closing_balance=rows[-1].balance_after if rows else brought_forward,
        )

    async def dashboard(self) -> DashboardStats:
        snap = await self.snapshot()

        receivables = payables = cash = ZERO
        for account in snap.accounts:
            balance = Decimal(account.balance)
            if account.type == AccountType.CUSTOMER and balance > 0:
                receivables += balance
            elif account.type == AccountType.VENDOR and balance < 0:
                payables += -balance
            elif account.type == AccountType.CASH_BANK:
                cash += balance

        income = sum(
            (Decimal(v.total_amount_pkr) for v in snap.vouchers
             if v.type in REVENUE_VOUCHER_TYPES and v.status == VoucherStatus.POSTED),
            ZERO,
        )
        return DashboardStats(
            total_receivables=receivables,
            total_payables=payables,
            total_income=income,
            total_cash=cash,
            degraded=snap.degraded,
        )

    async def integrity(self) -> IntegrityReport:
        """Re-derive every stored aggregate from the raw entries and list disagreements."""
        snap = await self.snapshot()

        net: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        debits: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        credits: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        voucher_ids = {v.id for v in snap.vouchers}
        orphans = []
        for entry in snap.entries:
            net[entry.account_id] += Decimal(entry.debit) - Decimal(entry.credit)
            if entry.voucher_id is None:
                continue
            if entry.voucher_id not in voucher_ids:
                orphans.append(entry.id)
                continue
            debits[entry.voucher_id] += Decimal(entry.debit)
            credits[entry.voucher_id] += Decimal(entry.credit)

        drifted = [
            BalanceDrift(
                account_id=a.id, name=a.name, stored_balance=Decimal(a.balance), ledger_balance=net[a.id],
            )
            for a in snap.accounts
            if Decimal(a.balance) != net[a.id]
        ]

        unbalanced = []
        for voucher in snap.vouchers:
            total = Decimal(voucher.total_amount_pkr) if voucher.status == VoucherStatus.POSTED else ZERO
            debit, credit = debits[voucher.id], credits[voucher.id]
            if not (debit == credit == total):
                unbalanced.append(UnbalancedVoucher(
                    voucher_id=voucher.id,
                    voucher_num=voucher.voucher_num,
                    total_amount_pkr=Decimal(voucher.total_amount_pkr),
                    total_debit=debit,
                    total_credit=credit,
                ))

        ok = not (snap.degraded or drifted or unbalanced or orphans)
        if not ok and not snap.degraded:
            logger.warning(
                "Integrity check failed: %d drifted accounts, %d unbalanced vouchers, %d orphan entries",
                len(drifted), len(unbalanced), len(orphans),
            )
        return IntegrityReport(
            ok=ok,
            drifted_accounts=drifted,
            unbalanced_vouchers=unbalanced,
            orphan_entry_ids=orphans,
            degraded=snap.degraded,
        )
