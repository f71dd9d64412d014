"""
Maintenance API Endpoints.

Full-database export (JSON and accounts CSV), transactional import and
the audit trail.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from travel_ledger.app.core.dependencies import get_uow_factory
from travel_ledger.app.db.unit_of_work import UnitOfWorkFactory
from travel_ledger.app.schemas.audit import AuditLogResponse
from travel_ledger.app.schemas.snapshot import DatabaseSnapshot, ImportResult
from travel_ledger.app.services.audit import get_audit_trail
from travel_ledger.app.services.data_transfer import export_accounts_csv, export_snapshot, import_snapshot

router = APIRouter(prefix="/maintenance", tags=["Maintenance"])


@router.get("/export", response_model=DatabaseSnapshot)
async def export_database(uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)):
    return await export_snapshot(uow_factory)


@router.get("/export/accounts.csv")
async def export_accounts(uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)):
    content = await export_accounts_csv(uow_factory)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="accounts.csv"'}
    )


@router.post("/import", response_model=ImportResult)
async def import_database(
    snapshot: DatabaseSnapshot,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)
):
    """
    Replace the whole database with a snapshot.

    All or nothing: a snapshot whose balances or vouchers do not reconcile is
    rejected before anything is deleted.
    """
    return await import_snapshot(uow_factory, snapshot)


@router.get("/audit", response_model=List[AuditLogResponse])
async def audit_trail(
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)
):
    """Most recent writes first, optionally narrowed to one entity or action."""
    async with uow_factory() as uow:
        return await get_audit_trail(uow.session, entity_id=entity_id, action=action, limit=limit)
