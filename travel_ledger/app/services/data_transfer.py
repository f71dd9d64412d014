"""
Database export and import.

Export is a read-only snapshot `{accounts, vouchers, config}`. Import is
delete-all-then-reinsert inside one unit of work: the snapshot is checked
first, balances are rebuilt from the imported entries, and the result is
compared with the snapshot before commit. Any failure leaves the database
untouched.
"""

import csv
import io
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from travel_ledger.app.core.exceptions import ImportRejectedError, PersistenceError
from travel_ledger.app.db.unit_of_work import UnitOfWorkFactory
from travel_ledger.app.domain.posting.rules import ZERO, to_money
from travel_ledger.app.models.account import Account
from travel_ledger.app.models.app_config import AppConfig
from travel_ledger.app.models.enums import VoucherStatus
from travel_ledger.app.models.ledger_entry import LedgerEntry
from travel_ledger.app.models.voucher import Voucher
from travel_ledger.app.schemas.settings import AppConfigResponse
from travel_ledger.app.schemas.snapshot import (
    DatabaseSnapshot,
    ImportResult,
    SnapshotAccount,
    SnapshotEntry,
    SnapshotVoucher,
)
from travel_ledger.app.services.audit import AuditAction, log_event
from travel_ledger.app.services.config_store import default_config

logger = logging.getLogger("travel_ledger.data_transfer")

CSV_COLUMNS = ["code", "name", "type", "currency", "cell", "location", "balance"]


async def export_snapshot(uow_factory: UnitOfWorkFactory) -> DatabaseSnapshot:
    async with uow_factory() as uow:
        accounts = await uow.accounts.list()
        entries = await uow.ledger.all()
        vouchers = await uow.vouchers.list()
        config = await uow.config.get() or default_config()

    ledgers: Dict[str, List[SnapshotEntry]] = defaultdict(list)
    for entry in entries:
        ledgers[entry.account_id].append(SnapshotEntry.model_validate(entry))

    return DatabaseSnapshot(
        accounts=[
            SnapshotAccount(
                id=account.id,
                code=account.code,
                name=account.name,
                type=account.type,
                currency=account.currency,
                cell=account.cell,
                location=account.location,
                balance=account.balance,
                ledger=ledgers.get(account.id, []),
            )
            for account in accounts
        ],
        vouchers=[SnapshotVoucher.model_validate(voucher) for voucher in vouchers],
        config=AppConfigResponse.model_validate(config),
    )


async def export_accounts_csv(uow_factory: UnitOfWorkFactory) -> str:
    async with uow_factory() as uow:
        accounts = await uow.accounts.list()

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)
    for account in accounts:
        writer.writerow([
            account.code or "",
            account.name,
            account.type.value,
            account.currency.value,
            account.cell or "",
            account.location or "",
            f"{Decimal(account.balance):.2f}",
        ])
    return buffer.getvalue()


def check_snapshot(snapshot: DatabaseSnapshot) -> None:
    """
    Reject a snapshot that would break the ledger invariants.

    Raises:
        ImportRejectedError: describing the first problem found
    """
    account_ids = set()
    codes = set()
    for account in snapshot.accounts:
        if account.id in account_ids:
            raise ImportRejectedError("Duplicate account id", {"account_id": account.id})
        account_ids.add(account.id)
        if account.code:
            if account.code in codes:
                raise ImportRejectedError("Duplicate account code", {"code": account.code})
            codes.add(account.code)

    voucher_ids = set()
    numbers = set()
    for voucher in snapshot.vouchers:
        if voucher.id in voucher_ids or voucher.voucher_num in numbers:
            raise ImportRejectedError("Duplicate voucher", {"voucher_id": voucher.id, "voucher_num": voucher.voucher_num})
        voucher_ids.add(voucher.id)
        numbers.add(voucher.voucher_num)
        for party in (voucher.customer_id, voucher.vendor_id):
            if party and party not in account_ids:
                raise ImportRejectedError("Voucher references an unknown account", {"voucher_id": voucher.id, "account_id": party})

    entry_ids = set()
    debits: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    credits: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for account in snapshot.accounts:
        net = ZERO
        for entry in account.ledger:
            if entry.id in entry_ids:
                raise ImportRejectedError("Duplicate ledger entry id", {"entry_id": entry.id})
            entry_ids.add(entry.id)
            debit, credit = to_money(entry.debit), to_money(entry.credit)
            if debit < 0 or credit < 0 or (debit > 0) == (credit > 0):
                raise ImportRejectedError("Ledger entry must have exactly one positive side", {"entry_id": entry.id})
            if entry.voucher_id is not None:
                if entry.voucher_id not in voucher_ids:
                    raise ImportRejectedError("Ledger entry references an unknown voucher", {"entry_id": entry.id})
                debits[entry.voucher_id] += debit
                credits[entry.voucher_id] += credit
            net += debit - credit
        if to_money(account.balance) != net:
            raise ImportRejectedError(
                "Account balance does not match its ledger",
                {"account_id": account.id, "balance": str(account.balance), "ledger": str(net)},
            )

    for voucher in snapshot.vouchers:
        total = to_money(voucher.total_amount_pkr)
        debit, credit = debits[voucher.id], credits[voucher.id]
        if voucher.status == VoucherStatus.VOID:
            if debit or credit:
                raise ImportRejectedError("Void voucher still has entries", {"voucher_id": voucher.id})
        elif not (debit == credit == total):
            raise ImportRejectedError(
                "Voucher entries do not balance",
                {"voucher_id": voucher.id, "debit": str(debit), "credit": str(credit), "total": str(total)},
            )


async def import_snapshot(uow_factory: UnitOfWorkFactory, snapshot: DatabaseSnapshot) -> ImportResult:
    """Replace all accounts, vouchers, entries and config with the snapshot's."""
    check_snapshot(snapshot)

    async with uow_factory() as uow:
        session = uow.session
        try:
            await session.execute(delete(LedgerEntry))
            await session.execute(delete(Voucher))
            await session.execute(delete(Account))
            await session.execute(delete(AppConfig))
            session.expunge_all()

            for account in snapshot.accounts:
                session.add(Account(
                    id=account.id,
                    code=account.code,
                    name=account.name,
                    type=account.type,
                    currency=account.currency,
                    cell=account.cell,
                    location=account.location,
                    balance=ZERO,
                ))
            await session.flush()

            for voucher in snapshot.vouchers:
                session.add(Voucher(**voucher.model_dump(mode="python")))
            await session.flush()

            entries = []
            for account in snapshot.accounts:
                for entry in account.ledger:
                    fields = entry.model_dump(exclude_none=True)
                    entries.append(LedgerEntry(account_id=account.id, **fields))
            # Balances are rebuilt from the entries, never copied
            await uow.ledger.insert(entries)

            config_data = snapshot.config.model_dump()
            await uow.config.save(AppConfig(**config_data))

            for account in snapshot.accounts:
                stored = await uow.accounts.get(account.id)
                if to_money(stored.balance) != to_money(account.balance):
                    raise ImportRejectedError(
                        "Rebuilt balance differs from snapshot",
                        {"account_id": account.id, "balance": str(account.balance), "rebuilt": str(stored.balance)},
                    )

            await log_event(session, AuditAction.DATABASE_IMPORTED, "database", None, {
                "accounts": len(snapshot.accounts),
                "vouchers": len(snapshot.vouchers),
                "entries": len(entries),
                "version": snapshot.version,
            })
            await uow.commit()
        except SQLAlchemyError as exc:
            logger.error("Import failed, rolled back: %s", exc)
            raise PersistenceError("import", exc) from exc

    logger.info("Imported %d accounts, %d vouchers, %d entries", len(snapshot.accounts), len(snapshot.vouchers), len(entries))
    return ImportResult(accounts=len(snapshot.accounts), vouchers=len(snapshot.vouchers), entries=len(entries))
