"""
Account API Endpoints.

Registration (with opening balance), profile edits, deletion and ledgers.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from travel_ledger.app.core.dependencies import get_posting_engine, get_uow_factory
from travel_ledger.app.core.exceptions import ResourceNotFoundError
from travel_ledger.app.db.unit_of_work import UnitOfWorkFactory
from travel_ledger.app.domain.posting.engine import PostingEngine
from travel_ledger.app.domain.reports.aggregator import with_running_balance
from travel_ledger.app.models.enums import AccountType
from travel_ledger.app.schemas.account import (
    AccountCreate,
    AccountListResponse,
    AccountResponse,
    AccountUpdate,
    AccountWithLedgerResponse,
)

router = APIRouter(prefix="/accounts", tags=["Accounts"])


def _with_ledger(account, entries, numbers) -> AccountWithLedgerResponse:
    return AccountWithLedgerResponse(
        **AccountResponse.model_validate(account).model_dump(),
        ledger=with_running_balance(entries, numbers)
    )


@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def register_account(
    account_data: AccountCreate,
    engine: PostingEngine = Depends(get_posting_engine)
):
    """
    Register an account.

    A positive opening balance posts one entry on the new account and the
    contra entry on the Opening Balance Reserve.
    """
    account = await engine.register_account(
        name=account_data.name,
        type=account_data.type,
        cell=account_data.cell,
        location=account_data.location,
        opening_balance=account_data.opening_balance,
        is_debit_natured=account_data.is_debit_natured,
        code=account_data.code,
        currency=account_data.currency,
    )
    return AccountResponse.model_validate(account)


@router.get("", response_model=AccountListResponse)
async def list_accounts(
    type: Optional[AccountType] = Query(None, description="Filter by account type"),
    include_ledger: bool = Query(False, description="Include each account's ledger"),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)
):
    """List accounts ordered by code."""
    async with uow_factory() as uow:
        accounts = await uow.accounts.list(type)
        ledgers = {}
        numbers = {}
        if include_ledger:
            for account in accounts:
                ledgers[account.id] = await uow.ledger.for_account(account.id)
            numbers = await uow.vouchers.numbers(
                e.voucher_id for entries in ledgers.values() for e in entries
            )

    if include_ledger:
        items = [_with_ledger(a, ledgers[a.id], numbers) for a in accounts]
    else:
        items = [AccountResponse.model_validate(a) for a in accounts]
    return AccountListResponse(accounts=items, total=len(items))


@router.get("/{account_id}", response_model=AccountWithLedgerResponse)
async def get_account(
    account_id: str,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)
):
    """Get an account with its chronological ledger and running balance."""
    async with uow_factory() as uow:
        account = await uow.accounts.get(account_id)
        if not account:
            raise ResourceNotFoundError("Account", account_id)
        entries = await uow.ledger.for_account(account_id)
        numbers = await uow.vouchers.numbers(e.voucher_id for e in entries)

    return _with_ledger(account, entries, numbers)


@router.patch("/{account_id}", response_model=AccountResponse)
async def update_account(
    account_id: str,
    account_data: AccountUpdate,
    engine: PostingEngine = Depends(get_posting_engine)
):
    """Edit profile fields. Balance and type cannot be changed here."""
    account = await engine.update_account(account_id, account_data.model_dump(exclude_unset=True))
    return AccountResponse.model_validate(account)


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    account_id: str,
    engine: PostingEngine = Depends(get_posting_engine)
):
    """
    Delete an account.

    Refused while any voucher references it or while it holds other
    accounts' opening contra entries.
    """
    await engine.delete_account(account_id)
