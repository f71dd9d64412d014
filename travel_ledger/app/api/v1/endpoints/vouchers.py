"""
Voucher API Endpoints.

Posting, editing, voiding and cloning vouchers. Every write goes through the
posting engine; callers never supply ledger entries.
"""

from datetime import date
from typing import Annotated, Optional
from fastapi import APIRouter, Body, Depends, Query, status
from travel_ledger.app.core.dependencies import get_posting_engine, get_uow_factory
from travel_ledger.app.core.exceptions import ResourceNotFoundError
from travel_ledger.app.db.unit_of_work import UnitOfWorkFactory
from travel_ledger.app.domain.posting.engine import PostingEngine
from travel_ledger.app.models.enums import VoucherStatus, VoucherType
from travel_ledger.app.schemas.voucher import (
    VoucherDetailResponse,
    VoucherEntryResponse,
    VoucherIntentUnion,
    VoucherListResponse,
    VoucherResponse,
)

router = APIRouter(prefix="/vouchers", tags=["Vouchers"])

IntentBody = Annotated[VoucherIntentUnion, Body(discriminator="type")]


@router.post("", response_model=VoucherResponse, status_code=status.HTTP_201_CREATED)
async def post_voucher(
    intent: IntentBody,
    engine: PostingEngine = Depends(get_posting_engine)
):
    """
    Post a voucher.

    The body is tagged by `type` (RV, HV, TV, VV, TK, PV). A voucher number is
    generated unless one is supplied.
    """
    voucher = await engine.post(intent)
    return VoucherResponse.model_validate(voucher)


@router.get("", response_model=VoucherListResponse)
async def list_vouchers(
    type: Optional[VoucherType] = Query(None, description="Filter by voucher type"),
    status_filter: Optional[VoucherStatus] = Query(None, alias="status", description="Filter by status"),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)
):
    """List vouchers, newest first."""
    async with uow_factory() as uow:
        vouchers = await uow.vouchers.list(type, status_filter, from_date, to_date)

    return VoucherListResponse(
        vouchers=[VoucherResponse.model_validate(v) for v in vouchers],
        total=len(vouchers)
    )


@router.get("/{voucher_id}", response_model=VoucherDetailResponse)
async def get_voucher(
    voucher_id: str,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)
):
    """Get a voucher with its ledger entries."""
    async with uow_factory() as uow:
        voucher = await uow.vouchers.get(voucher_id)
        if not voucher:
            raise ResourceNotFoundError("Voucher", voucher_id)
        entries = await uow.ledger.for_voucher(voucher_id)

    return VoucherDetailResponse(
        **VoucherResponse.model_validate(voucher).model_dump(),
        entries=[VoucherEntryResponse.model_validate(e) for e in entries]
    )


@router.put("/{voucher_id}", response_model=VoucherResponse)
async def update_voucher(
    voucher_id: str,
    intent: IntentBody,
    engine: PostingEngine = Depends(get_posting_engine)
):
    """
    Replace a voucher.

    Old entries are reversed and the intent is reposted under the same id in
    one transaction. The voucher number is kept unless the body supplies one.
    """
    voucher = await engine.update(voucher_id, intent)
    return VoucherResponse.model_validate(voucher)


@router.delete("/{voucher_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_voucher(
    voucher_id: str,
    engine: PostingEngine = Depends(get_posting_engine)
):
    """Delete a voucher and reverse all of its entries."""
    await engine.delete(voucher_id)


@router.post("/{voucher_id}/void", response_model=VoucherResponse)
async def void_voucher(
    voucher_id: str,
    engine: PostingEngine = Depends(get_posting_engine)
):
    """Reverse a voucher's entries but keep its header, marked VOID."""
    voucher = await engine.void(voucher_id)
    return VoucherResponse.model_validate(voucher)


@router.post("/{voucher_id}/clone", response_model=VoucherResponse, status_code=status.HTTP_201_CREATED)
async def clone_voucher(
    voucher_id: str,
    engine: PostingEngine = Depends(get_posting_engine)
):
    """Post a copy dated today, with a new number and no reference."""
    voucher = await engine.clone(voucher_id)
    return VoucherResponse.model_validate(voucher)
