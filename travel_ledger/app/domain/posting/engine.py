"""
Posting Engine (Domain Logic).

Turns voucher intents into balanced ledger entries and keeps every account's
stored balance in step with its entries. Each public operation is one unit
of work: validate everything, write header and entries, commit once.

Edits are delete-then-repost inside a single transaction, so a reader never
sees a voucher whose entries are half removed or half inserted. Two
concurrent edits of the same voucher are last-write-wins.
"""

import asyncio
import functools
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from travel_ledger.app.core.config import settings
from travel_ledger.app.core.exceptions import (
    ConfigurationError,
    PersistenceError,
    ResourceNotFoundError,
    ValidationError,
)
from travel_ledger.app.db.unit_of_work import UnitOfWork, UnitOfWorkFactory
from travel_ledger.app.domain.posting.numbering import check_voucher_num, generate_voucher_num
from travel_ledger.app.domain.posting.rules import ZERO, PostingPlan, expand, referenced_account_ids, resolve_roe, to_money
from travel_ledger.app.models.account import Account, new_id
from travel_ledger.app.models.enums import AccountType, Currency, VoucherStatus
from travel_ledger.app.models.ledger_entry import LedgerEntry
from travel_ledger.app.models.voucher import Voucher
from travel_ledger.app.schemas.voucher import voucher_intent_adapter
from travel_ledger.app.services.audit import AuditAction, log_event

logger = logging.getLogger("travel_ledger.posting")

OPENING_DESCRIPTION = "Opening Balance (IFRS Initial Measurement)"
EDITABLE_ACCOUNT_FIELDS = ("name", "cell", "location", "code", "currency")


def intent_from_voucher(voucher: Voucher, **overrides):
    """Rebuild the intent a stored voucher was posted from."""
    data = {
        "type": voucher.type.value,
        "voucher_num": voucher.voucher_num,
        "date": voucher.date,
        "currency": voucher.currency,
        "roe": voucher.roe,
        "reference": voucher.reference,
        "description": voucher.description or "",
        "customer_id": voucher.customer_id,
        "vendor_id": voucher.vendor_id,
        "details": voucher.details or {},
    }
    data.update(overrides)
    return voucher_intent_adapter.validate_python(data)


class PostingEngine:
    """
    Posting engine over an injected unit-of-work factory.

    Every operation validates before its first write and raises
    ValidationError / ConfigurationError with nothing persisted. Store failures
    roll the whole unit back and surface as PersistenceError naming the phase.
    Once an operation reaches the store it is shielded from caller
    cancellation and runs to commit or rollback.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        split_tolerance: Decimal = settings.split_tolerance,
        opening_reserve_code: str = settings.opening_reserve_code,
    ):
        self.uow_factory = uow_factory
        self.split_tolerance = split_tolerance
        self.opening_reserve_code = opening_reserve_code

    # Voucher operations

    async def post(self, intent) -> Voucher:
        return await self._submit(self._post, intent)

    async def update(self, voucher_id: str, intent) -> Voucher:
        return await self._submit(self._update, voucher_id, intent)

    async def delete(self, voucher_id: str) -> None:
        await self._submit(self._delete, voucher_id)

    async def void(self, voucher_id: str) -> Voucher:
        return await self._submit(self._void, voucher_id)

    async def clone(self, voucher_id: str) -> Voucher:
        return await self._submit(self._clone, voucher_id)

    # Account operations

    async def register_account(
        self,
        name: str,
        type: AccountType,
        cell: Optional[str] = None,
        location: Optional[str] = None,
        opening_balance: Decimal = ZERO,
        is_debit_natured: bool = True,
        code: Optional[str] = None,
        currency: Currency = Currency.PKR,
    ) -> Account:
        return await self._submit(
            self._register_account,
            name, type, cell, location, opening_balance, is_debit_natured, code, currency,
        )

    async def update_account(self, account_id: str, changes: Dict[str, Any]) -> Account:
        return await self._submit(self._update_account, account_id, changes)

    async def delete_account(self, account_id: str) -> None:
        await self._submit(self._delete_account, account_id)

    # Unit of work plumbing

    async def _submit(self, operation, *args):
        task = asyncio.ensure_future(self._run(operation, *args))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            # The write carries on without its caller; its outcome still has to be reported
            task.add_done_callback(functools.partial(self._report_detached, operation.__name__.lstrip("_")))
            raise

    @staticmethod
    def _report_detached(name: str, task: asyncio.Future) -> None:
        if task.cancelled():
            logger.error("%s was cancelled after its caller went away", name)
        elif task.exception() is not None:
            logger.error("%s failed after its caller went away: %s", name, task.exception())
        else:
            logger.info("%s completed after its caller went away", name)

    async def _run(self, operation, *args):
        async with self.uow_factory() as uow:
            try:
                result = await operation(uow, *args)
            except SQLAlchemyError as exc:
                raise PersistenceError("lookup", exc) from exc
            try:
                await uow.commit()
            except SQLAlchemyError as exc:
                raise PersistenceError("commit", exc) from exc
            return result

    @staticmethod
    async def _step(phase: str, awaitable):
        try:
            return await awaitable
        except SQLAlchemyError as exc:
            logger.error("Store rejected %s: %s", phase, exc)
            raise PersistenceError(phase, exc) from exc

    # Staging (no writes)

    async def _stage(self, uow: UnitOfWork, intent) -> tuple[PostingPlan, Optional[str]]:
        accounts = {}
        for account_id in referenced_account_ids(intent):
            account = await uow.accounts.get(account_id)
            if account is not None:
                accounts[account_id] = account

        config = await uow.config.get()
        default_roe = config.default_roe if config is not None else settings.default_roe
        roe = resolve_roe(Currency(intent.currency), intent.roe, default_roe)

        plan = expand(intent, roe, accounts, self.split_tolerance)
        voucher_num = check_voucher_num(intent.voucher_num, plan.voucher_type) if intent.voucher_num else None
        return plan, voucher_num

    async def _write(
        self,
        uow: UnitOfWork,
        intent,
        plan: PostingPlan,
        voucher_num: Optional[str],
        voucher_id: Optional[str] = None,
        created_at=None,
    ) -> Voucher:
        voucher = Voucher(
            id=voucher_id or new_id(),
            type=plan.voucher_type,
            voucher_num=voucher_num or generate_voucher_num(plan.voucher_type, intent.date),
            date=intent.date,
            currency=Currency(intent.currency),
            roe=plan.roe,
            total_amount_pkr=plan.total_amount_pkr,
            description=intent.description or "",
            status=VoucherStatus.POSTED,
            reference=intent.reference,
            customer_id=plan.customer_id,
            vendor_id=plan.vendor_id,
            details=intent.details.model_dump(mode="json"),
        )
        if created_at is not None:
            voucher.created_at = created_at
        await self._step("header insert", uow.vouchers.add(voucher))

        entries = [
            LedgerEntry(
                account_id=draft.account_id,
                voucher_id=voucher.id,
                date=intent.date,
                description=draft.description,
                debit=draft.debit,
                credit=draft.credit,
            )
            for draft in plan.entries
        ]
        await self._step("entries insert", uow.ledger.insert(entries))
        return voucher

    async def _remove_entries(self, uow: UnitOfWork, voucher: Voucher) -> int:
        entries = await uow.ledger.for_voucher(voucher.id)
        await self._step("entries delete", uow.ledger.remove(entries))
        return len(entries)

    async def _load_voucher(self, uow: UnitOfWork, voucher_id: str) -> Voucher:
        voucher = await uow.vouchers.get(voucher_id)
        if voucher is None:
            raise ResourceNotFoundError("Voucher", voucher_id)
        return voucher

    # Voucher operation bodies

    async def _post(self, uow: UnitOfWork, intent) -> Voucher:
        plan, voucher_num = await self._stage(uow, intent)
        voucher = await self._write(uow, intent, plan, voucher_num)

        await log_event(uow.session, AuditAction.VOUCHER_POSTED, "voucher", voucher.id, {
            "voucher_num": voucher.voucher_num,
            "total_amount_pkr": str(plan.total_amount_pkr),
            "entries": len(plan.entries),
        })
        logger.info("Posted %s for %s PKR (%d entries)", voucher.voucher_num, plan.total_amount_pkr, len(plan.entries))
        return await uow.vouchers.get(voucher.id)

    async def _update(self, uow: UnitOfWork, voucher_id: str, intent) -> Voucher:
        existing = await self._load_voucher(uow, voucher_id)
        plan, voucher_num = await self._stage(uow, intent)

        # Keep the old number unless the caller supplied one or the type changed
        if voucher_num is None and existing.type == plan.voucher_type:
            voucher_num = existing.voucher_num
        previous_num = existing.voucher_num
        created_at = existing.created_at

        removed = await self._remove_entries(uow, existing)
        await self._step("header delete", uow.vouchers.delete(existing))
        voucher = await self._write(uow, intent, plan, voucher_num, voucher_id=voucher_id, created_at=created_at)

        await log_event(uow.session, AuditAction.VOUCHER_UPDATED, "voucher", voucher_id, {
            "previous_voucher_num": previous_num,
            "voucher_num": voucher.voucher_num,
            "removed_entries": removed,
            "total_amount_pkr": str(plan.total_amount_pkr),
        })
        logger.info("Reposted %s (%d entries replaced)", voucher.voucher_num, removed)
        return await uow.vouchers.get(voucher_id)

    async def _delete(self, uow: UnitOfWork, voucher_id: str) -> None:
        voucher = await self._load_voucher(uow, voucher_id)
        voucher_num = voucher.voucher_num

        removed = await self._remove_entries(uow, voucher)
        await self._step("header delete", uow.vouchers.delete(voucher))

        await log_event(uow.session, AuditAction.VOUCHER_DELETED, "voucher", voucher_id, {
            "voucher_num": voucher_num,
            "removed_entries": removed,
        })
        logger.info("Deleted %s (%d entries reversed)", voucher_num, removed)

    async def _void(self, uow: UnitOfWork, voucher_id: str) -> Voucher:
        voucher = await self._load_voucher(uow, voucher_id)
        if voucher.status == VoucherStatus.VOID:
            raise ValidationError("status", f"Voucher {voucher.voucher_num} is already void")

        removed = await self._remove_entries(uow, voucher)
        voucher.status = VoucherStatus.VOID
        await self._step("header update", uow.vouchers.add(voucher))

        await log_event(uow.session, AuditAction.VOUCHER_VOIDED, "voucher", voucher_id, {
            "voucher_num": voucher.voucher_num,
            "removed_entries": removed,
        })
        logger.info("Voided %s", voucher.voucher_num)
        return await uow.vouchers.get(voucher_id)

    async def _clone(self, uow: UnitOfWork, voucher_id: str) -> Voucher:
        source = await self._load_voucher(uow, voucher_id)
        intent = intent_from_voucher(source, voucher_num=None, date=date.today(), reference=None)
        return await self._post(uow, intent)

    # Account operation bodies

    async def _register_account(
        self,
        uow: UnitOfWork,
        name: str,
        account_type: AccountType,
        cell: Optional[str],
        location: Optional[str],
        opening_balance: Decimal,
        is_debit_natured: bool,
        code: Optional[str],
        currency: Currency,
    ) -> Account:
        if not name or not name.strip():
            raise ValidationError("name", "Account name is required")
        opening = to_money(opening_balance or ZERO)
        if opening < 0:
            raise ValidationError("opening_balance", "Opening balance cannot be negative")
        if code and await uow.accounts.get_by_code(code) is not None:
            raise ValidationError("code", f"Account code {code} is already in use")

        reserve = None
        if opening > 0:
            reserve = await uow.accounts.get_by_code(self.opening_reserve_code)
            if reserve is None:
                raise ConfigurationError(
                    f"Opening Balance Reserve account {self.opening_reserve_code} is missing",
                    details={"code": self.opening_reserve_code},
                )

        account = Account(
            id=new_id(),
            code=code or None,
            name=name.strip(),
            type=AccountType(account_type),
            currency=Currency(currency),
            cell=cell,
            location=location,
            balance=ZERO,
        )
        await self._step("account insert", uow.accounts.add(account))

        if opening > 0:
            own = LedgerEntry(
                account_id=account.id,
                opening_for_account_id=account.id,
                date=date.today(),
                description=OPENING_DESCRIPTION,
                debit=opening if is_debit_natured else ZERO,
                credit=ZERO if is_debit_natured else opening,
            )
            contra = LedgerEntry(
                account_id=reserve.id,
                opening_for_account_id=account.id,
                date=date.today(),
                description=f"Contra Opening Balance: {account.name}",
                debit=own.credit,
                credit=own.debit,
            )
            await self._step("entries insert", uow.ledger.insert([own, contra]))

        await log_event(uow.session, AuditAction.ACCOUNT_REGISTERED, "account", account.id, {
            "name": account.name,
            "type": account.type.value,
            "opening_balance": str(opening),
            "is_debit_natured": is_debit_natured,
        })
        logger.info("Registered account %s (%s), opening %s", account.name, account.type.value, opening)
        return await uow.accounts.get(account.id)

    async def _update_account(self, uow: UnitOfWork, account_id: str, changes: Dict[str, Any]) -> Account:
        changes = dict(changes)
        if "code" in changes:
            changes["code"] = changes["code"] or None
        account = await uow.accounts.get(account_id)
        if account is None:
            raise ResourceNotFoundError("Account", account_id)

        for field_name, value in changes.items():
            if field_name not in EDITABLE_ACCOUNT_FIELDS:
                raise ValidationError(field_name, f"{field_name} cannot be edited")
        if "name" in changes and not (changes["name"] or "").strip():
            raise ValidationError("name", "Account name is required")
        if "currency" in changes and changes["currency"] is None:
            raise ValidationError("currency", "Currency is required")
        new_code = changes.get("code")
        if new_code and new_code != account.code and await uow.accounts.get_by_code(new_code) is not None:
            raise ValidationError("code", f"Account code {new_code} is already in use")

        for field_name, value in changes.items():
            setattr(account, field_name, value)
        await self._step("account update", uow.accounts.add(account))

        await log_event(uow.session, AuditAction.ACCOUNT_UPDATED, "account", account_id, {
            "fields": sorted(changes),
        })
        return await uow.accounts.get(account_id)

    async def _delete_account(self, uow: UnitOfWork, account_id: str) -> None:
        account = await uow.accounts.get(account_id)
        if account is None:
            raise ResourceNotFoundError("Account", account_id)

        if await uow.accounts.voucher_reference_count(account_id):
            raise ValidationError("account_id", f"Account {account.name} is referenced by vouchers")
        if await uow.ledger.foreign_contra_count(account_id):
            raise ValidationError("account_id", f"Account {account.name} holds opening balances of other accounts")

        opening = await uow.ledger.opening_pair(account_id)
        await self._step("entries delete", uow.ledger.remove(opening))
        await self._step("account delete", uow.accounts.delete(account))

        await log_event(uow.session, AuditAction.ACCOUNT_DELETED, "account", account_id, {
            "name": account.name,
            "removed_entries": len(opening),
        })
        logger.info("Deleted account %s", account.name)
