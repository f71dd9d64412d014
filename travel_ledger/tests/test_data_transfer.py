"""
Export / Import Tests.
"""

import csv
import io
from datetime import date
from decimal import Decimal

import pytest

from travel_ledger.app.core.exceptions import ImportRejectedError
from travel_ledger.app.models.enums import AccountType
from travel_ledger.app.schemas.snapshot import DatabaseSnapshot, SNAPSHOT_VERSION
from travel_ledger.app.schemas.voucher import (
    HotelDetails,
    HotelVoucherIntent,
    ReceiptDetails,
    ReceiptVoucherIntent,
)
from travel_ledger.app.services.data_transfer import (
    CSV_COLUMNS,
    check_snapshot,
    export_accounts_csv,
    export_snapshot,
    import_snapshot,
)


@pytest.fixture
async def populated(posting_engine, parties):
    regular = await posting_engine.register_account(
        name="Returning Client", type=AccountType.CUSTOMER, opening_balance=Decimal("1500"),
    )
    hotel = await posting_engine.post(HotelVoucherIntent(
        date=date(2024, 6, 1),
        customer_id=regular.id,
        vendor_id=parties["vendor"].id,
        details=HotelDetails(
            total_amount=Decimal("12000"),
            vendor_amount_pkr=Decimal("11000"),
            income_amount_pkr=Decimal("1000"),
            income_account_id=parties["rev_hotel"].id,
        ),
    ))
    receipt = await posting_engine.post(ReceiptVoucherIntent(
        date=date(2024, 6, 3),
        customer_id=regular.id,
        details=ReceiptDetails(bank_id=parties["bank"].id, amount=Decimal("5000")),
    ))
    await posting_engine.void(receipt.id)
    return {"regular": regular, "hotel": hotel, "receipt": receipt, **parties}


async def balances(uow_factory):
    async with uow_factory() as uow:
        accounts = await uow.accounts.list()
    return {a.id: Decimal(a.balance) for a in accounts}


@pytest.mark.asyncio
async def test_export_contains_accounts_ledgers_vouchers_and_config(uow_factory, populated):
    snapshot = await export_snapshot(uow_factory)

    assert snapshot.version == SNAPSHOT_VERSION
    assert {v.id for v in snapshot.vouchers} == {populated["hotel"].id, populated["receipt"].id}
    assert snapshot.config.company_name

    accounts = {a.id: a for a in snapshot.accounts}
    regular = accounts[populated["regular"].id]
    assert regular.balance == Decimal("13500")
    assert len(regular.ledger) == 2
    assert sum(e.debit - e.credit for e in regular.ledger) == regular.balance

    check_snapshot(snapshot)


@pytest.mark.asyncio
async def test_accounts_csv(uow_factory, populated):
    content = await export_accounts_csv(uow_factory)

    rows = list(csv.reader(io.StringIO(content)))
    assert rows[0] == CSV_COLUMNS
    by_name = {row[1]: row for row in rows[1:]}
    assert by_name["Returning Client"][6] == "13500.00"
    assert by_name["Cash in Hand"][0] == "1001"


@pytest.mark.asyncio
async def test_import_restores_exported_state(uow_factory, posting_engine, aggregator, populated):
    snapshot = await export_snapshot(uow_factory)
    before = await balances(uow_factory)

    # Diverge from the snapshot, then restore it
    await posting_engine.delete(populated["hotel"].id)
    await posting_engine.register_account(name="Created Later", type=AccountType.VENDOR)

    result = await import_snapshot(uow_factory, snapshot)

    assert result.accounts == len(snapshot.accounts)
    assert result.vouchers == 2
    assert await balances(uow_factory) == before
    async with uow_factory() as uow:
        hotel = await uow.vouchers.get(populated["hotel"].id)
        assert hotel.voucher_num == populated["hotel"].voucher_num
        assert len(await uow.ledger.for_voucher(hotel.id)) == 3
        assert len(await uow.ledger.opening_pair(populated["regular"].id)) == 2

    assert (await aggregator.integrity()).ok


@pytest.mark.asyncio
async def test_import_survives_json_round_trip(uow_factory, populated):
    exported = await export_snapshot(uow_factory)
    snapshot = DatabaseSnapshot.model_validate_json(exported.model_dump_json())

    result = await import_snapshot(uow_factory, snapshot)

    assert result.entries == sum(len(a.ledger) for a in exported.accounts)


@pytest.mark.asyncio
async def test_unbalanced_snapshot_is_rejected_untouched(uow_factory, populated):
    snapshot = await export_snapshot(uow_factory)
    before = await balances(uow_factory)

    regular = next(a for a in snapshot.accounts if a.id == populated["regular"].id)
    hotel_entry = next(e for e in regular.ledger if e.voucher_id == populated["hotel"].id)
    hotel_entry.debit = Decimal("12500")
    regular.balance = Decimal("14000")

    with pytest.raises(ImportRejectedError) as exc_info:
        await import_snapshot(uow_factory, snapshot)

    assert exc_info.value.details["voucher_id"] == populated["hotel"].id
    assert await balances(uow_factory) == before


@pytest.mark.asyncio
async def test_balance_mismatch_is_rejected(uow_factory, populated):
    snapshot = await export_snapshot(uow_factory)
    snapshot.accounts[0].balance += Decimal("1")

    with pytest.raises(ImportRejectedError) as exc_info:
        check_snapshot(snapshot)
    assert exc_info.value.details["account_id"] == snapshot.accounts[0].id


@pytest.mark.asyncio
async def test_dangling_voucher_reference_is_rejected(uow_factory, populated):
    snapshot = await export_snapshot(uow_factory)
    snapshot.vouchers[0].customer_id = "ghost"

    with pytest.raises(ImportRejectedError):
        check_snapshot(snapshot)


@pytest.mark.asyncio
async def test_import_endpoint(client, uow_factory, populated):
    exported = (await client.get("/v1/maintenance/export")).json()

    response = await client.post("/v1/maintenance/import", json=exported)

    assert response.status_code == 200
    assert response.json()["vouchers"] == 2

    exported["accounts"][0]["balance"] = "999999"
    response = await client.post("/v1/maintenance/import", json=exported)
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_IMPORT_001"


@pytest.mark.asyncio
async def test_csv_endpoint(client, chart):
    response = await client.get("/v1/maintenance/export/accounts.csv")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.text.splitlines()[0] == ",".join(CSV_COLUMNS)
