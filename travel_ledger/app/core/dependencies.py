"""
FastAPI dependencies.

Routes never open sessions themselves: they receive a unit-of-work factory
(overridable in tests) and the engine or aggregator built on it.
"""

from fastapi import Depends
from travel_ledger.app.db.session import AsyncSessionLocal
from travel_ledger.app.db.unit_of_work import UnitOfWorkFactory, make_uow_factory
from travel_ledger.app.domain.posting.engine import PostingEngine
from travel_ledger.app.domain.reports.aggregator import ReportAggregator


def get_uow_factory() -> UnitOfWorkFactory:
    """Unit-of-work factory bound to the application's session factory."""
    return make_uow_factory(AsyncSessionLocal)


def get_posting_engine(uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)) -> PostingEngine:
    return PostingEngine(uow_factory)


def get_report_aggregator(uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)) -> ReportAggregator:
    return ReportAggregator(uow_factory)
