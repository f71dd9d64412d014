"""
Report API Endpoints.

Read-only statements. Integrity problems come back as fields on the report,
not as errors.
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from travel_ledger.app.core.dependencies import get_report_aggregator
from travel_ledger.app.domain.reports.aggregator import ReportAggregator
from travel_ledger.app.schemas.reports import (
    BalanceSheetReport,
    DashboardStats,
    GeneralLedgerReport,
    IntegrityReport,
    ProfitAndLossReport,
    TrialBalanceReport,
)

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/trial-balance", response_model=TrialBalanceReport)
async def trial_balance(aggregator: ReportAggregator = Depends(get_report_aggregator)):
    return await aggregator.trial_balance()


@router.get("/profit-and-loss", response_model=ProfitAndLossReport)
async def profit_and_loss(
    from_date: Optional[date] = Query(None, description="Inclusive start date"),
    to_date: Optional[date] = Query(None, description="Inclusive end date"),
    aggregator: ReportAggregator = Depends(get_report_aggregator)
):
    return await aggregator.profit_and_loss(from_date, to_date)


@router.get("/balance-sheet", response_model=BalanceSheetReport)
async def balance_sheet(aggregator: ReportAggregator = Depends(get_report_aggregator)):
    return await aggregator.balance_sheet()


@router.get("/general-ledger/{account_id}", response_model=GeneralLedgerReport)
async def general_ledger(
    account_id: str,
    from_date: Optional[date] = Query(None, description="Entries before this date are brought forward"),
    to_date: Optional[date] = Query(None),
    aggregator: ReportAggregator = Depends(get_report_aggregator)
):
    return await aggregator.general_ledger(account_id, from_date, to_date)


@router.get("/dashboard", response_model=DashboardStats)
async def dashboard(aggregator: ReportAggregator = Depends(get_report_aggregator)):
    return await aggregator.dashboard()


@router.get("/integrity", response_model=IntegrityReport)
async def integrity(aggregator: ReportAggregator = Depends(get_report_aggregator)):
    """Recompute balances and voucher totals from raw entries."""
    return await aggregator.integrity()
