"""
Posting Engine Tests.

Entry derivation for every voucher type, plus the validation contract.
"""

import random
from datetime import date
from decimal import Decimal

import pytest

from travel_ledger.app.core.exceptions import ValidationError
from travel_ledger.app.domain.posting.numbering import VOUCHER_NUM_PATTERN
from travel_ledger.app.models.enums import AccountType, VoucherStatus, VoucherType
from travel_ledger.app.schemas.voucher import (
    HotelDetails,
    HotelVoucherIntent,
    PaymentDetails,
    PaymentLine,
    PaymentVoucherIntent,
    ReceiptDetails,
    ReceiptVoucherIntent,
    TicketDetails,
    TicketVoucherIntent,
    TransportDetails,
    TransportItem,
    TransportVoucherIntent,
    VisaDetails,
    VisaVoucherIntent,
)


async def entries_of(uow_factory, voucher_id):
    async with uow_factory() as uow:
        entries = await uow.ledger.for_voucher(voucher_id)
    return {(e.account_id, Decimal(e.debit), Decimal(e.credit)) for e in entries}


def hotel_intent(parties, total="50000", vendor="45000", income="5000", **kwargs):
    return HotelVoucherIntent(
        date=date(2024, 3, 1),
        customer_id=parties["customer"].id,
        vendor_id=parties["vendor"].id,
        description="Hilton Makkah, 3 nights",
        details=HotelDetails(
            pax_name="Ali Raza",
            hotel_name="Hilton Makkah",
            num_rooms=1,
            num_nights=3,
            total_amount=Decimal(total),
            vendor_amount_pkr=Decimal(vendor) if vendor is not None else None,
            income_amount_pkr=Decimal(income) if income is not None else None,
            income_account_id=parties["rev_hotel"].id,
        ),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_hotel_voucher_splits_vendor_and_income(posting_engine, uow_factory, parties, balance):
    """Customer 50,000 Dr; vendor 45,000 Cr; revenue 5,000 Cr."""
    voucher = await posting_engine.post(hotel_intent(parties))

    assert voucher.type == VoucherType.HOTEL
    assert voucher.total_amount_pkr == Decimal("50000")
    assert voucher.status == VoucherStatus.POSTED
    assert await entries_of(uow_factory, voucher.id) == {
        (parties["customer"].id, Decimal("50000"), Decimal("0")),
        (parties["vendor"].id, Decimal("0"), Decimal("45000")),
        (parties["rev_hotel"].id, Decimal("0"), Decimal("5000")),
    }
    assert await balance(parties["customer"].id) == Decimal("50000")
    assert await balance(parties["vendor"].id) == Decimal("-45000")
    assert await balance(parties["rev_hotel"].id) == Decimal("-5000")


@pytest.mark.asyncio
async def test_payment_voucher_debits_each_line(posting_engine, uow_factory, parties, balance):
    """Fuel 2,000 + Office Supplies 800 paid from one bank."""
    voucher = await posting_engine.post(PaymentVoucherIntent(
        date=date(2024, 3, 2),
        description="Monthly running costs",
        details=PaymentDetails(
            bank_id=parties["bank"].id,
            lines=[
                PaymentLine(account_id=parties["petty"].id, amount=Decimal("2000"), description="Fuel"),
                PaymentLine(account_id=parties["office"].id, amount=Decimal("800"), description="Office Supplies"),
            ],
        ),
    ))

    assert voucher.total_amount_pkr == Decimal("2800")
    assert await entries_of(uow_factory, voucher.id) == {
        (parties["petty"].id, Decimal("2000"), Decimal("0")),
        (parties["office"].id, Decimal("800"), Decimal("0")),
        (parties["bank"].id, Decimal("0"), Decimal("2800")),
    }
    assert await balance(parties["bank"].id) == Decimal("-2800")
    assert voucher.customer_id is None


@pytest.mark.asyncio
async def test_visa_voucher_in_foreign_currency(posting_engine, uow_factory, parties):
    """SAR 500 at 75 posts 37,500 PKR on both sides."""
    voucher = await posting_engine.post(VisaVoucherIntent(
        currency="SAR",
        roe=Decimal("75"),
        customer_id=parties["customer"].id,
        vendor_id=parties["vendor"].id,
        details=VisaDetails(head_name="Umrah Visa", pax_name="Ali Raza", amount=Decimal("500")),
    ))

    assert voucher.total_amount_pkr == Decimal("37500")
    assert voucher.roe == Decimal("75")
    assert await entries_of(uow_factory, voucher.id) == {
        (parties["customer"].id, Decimal("37500"), Decimal("0")),
        (parties["vendor"].id, Decimal("0"), Decimal("37500")),
    }


@pytest.mark.asyncio
async def test_receipt_debits_bank_and_credits_customer(posting_engine, uow_factory, parties, balance):
    voucher = await posting_engine.post(ReceiptVoucherIntent(
        customer_id=parties["customer"].id,
        details=ReceiptDetails(bank_id=parties["bank"].id, amount=Decimal("12000")),
    ))

    assert await entries_of(uow_factory, voucher.id) == {
        (parties["bank"].id, Decimal("12000"), Decimal("0")),
        (parties["customer"].id, Decimal("0"), Decimal("12000")),
    }
    assert await balance(parties["customer"].id) == Decimal("-12000")


@pytest.mark.asyncio
async def test_ticket_passes_full_amount_to_vendor(posting_engine, uow_factory, parties):
    voucher = await posting_engine.post(TicketVoucherIntent(
        customer_id=parties["customer"].id,
        vendor_id=parties["vendor"].id,
        details=TicketDetails(pax_name="Ali Raza", airline="PIA", sector="ISB-JED", amount=Decimal("95000")),
    ))

    assert voucher.voucher_num.startswith("TK-")
    assert await entries_of(uow_factory, voucher.id) == {
        (parties["customer"].id, Decimal("95000"), Decimal("0")),
        (parties["vendor"].id, Decimal("0"), Decimal("95000")),
    }


@pytest.mark.asyncio
async def test_transport_in_sar_converts_split(posting_engine, uow_factory, parties):
    """Split amounts arrive in PKR; the total is converted with the voucher rate."""
    voucher = await posting_engine.post(TransportVoucherIntent(
        currency="SAR",
        roe=Decimal("74.5"),
        customer_id=parties["customer"].id,
        vendor_id=parties["vendor"].id,
        details=TransportDetails(
            items=[TransportItem(sector="JED-MAK", vehicle="GMC", rate=Decimal("400"))],
            service_fee=Decimal("50"),
            total_amount=Decimal("450"),
            vendor_amount_pkr=Decimal("29800"),
            income_amount_pkr=Decimal("3725"),
            income_account_id=parties["rev_transport"].id,
        ),
    ))

    assert voucher.total_amount_pkr == Decimal("33525")
    assert await entries_of(uow_factory, voucher.id) == {
        (parties["customer"].id, Decimal("33525"), Decimal("0")),
        (parties["vendor"].id, Decimal("0"), Decimal("29800")),
        (parties["rev_transport"].id, Decimal("0"), Decimal("3725")),
    }


@pytest.mark.asyncio
async def test_zero_service_fee_skips_income_entry(posting_engine, uow_factory, parties):
    voucher = await posting_engine.post(hotel_intent(parties, total="30000", vendor=None, income=None))

    entries = await entries_of(uow_factory, voucher.id)
    assert len(entries) == 2
    assert (parties["vendor"].id, Decimal("0"), Decimal("30000")) in entries


@pytest.mark.asyncio
async def test_sub_cent_residual_goes_to_vendor(posting_engine, uow_factory, parties):
    voucher = await posting_engine.post(hotel_intent(parties, total="1000.01", vendor="900", income="100"))

    entries = await entries_of(uow_factory, voucher.id)
    assert (parties["vendor"].id, Decimal("0"), Decimal("900.01")) in entries
    assert (parties["rev_hotel"].id, Decimal("0"), Decimal("100")) in entries


@pytest.mark.asyncio
async def test_foreign_currency_without_rate_uses_default_roe(posting_engine, parties):
    voucher = await posting_engine.post(TicketVoucherIntent(
        currency="SAR",
        customer_id=parties["customer"].id,
        vendor_id=parties["vendor"].id,
        details=TicketDetails(amount=Decimal("100")),
    ))

    assert voucher.roe == Decimal("74.5")
    assert voucher.total_amount_pkr == Decimal("7450")


@pytest.mark.asyncio
async def test_local_currency_forces_unit_rate(posting_engine, parties):
    voucher = await posting_engine.post(TicketVoucherIntent(
        roe=Decimal("80"),
        customer_id=parties["customer"].id,
        vendor_id=parties["vendor"].id,
        details=TicketDetails(amount=Decimal("100")),
    ))

    assert voucher.roe == Decimal("1")
    assert voucher.total_amount_pkr == Decimal("100")


@pytest.mark.asyncio
async def test_generated_number_carries_type_and_year(posting_engine, parties):
    voucher = await posting_engine.post(hotel_intent(parties))

    match = VOUCHER_NUM_PATTERN.match(voucher.voucher_num)
    assert match is not None
    assert match.group("code") == "HV"
    assert match.group("year") == "2024"
    assert len(match.group("suffix")) == 5
    assert voucher.invoice_number == match.group("suffix")


@pytest.mark.asyncio
async def test_details_are_stored_with_the_header(posting_engine, parties):
    voucher = await posting_engine.post(hotel_intent(parties))

    assert voucher.details["hotel_name"] == "Hilton Makkah"
    assert voucher.details["num_nights"] == 3


# Validation contract

async def assert_rejected(posting_engine, uow_factory, intent, field):
    with pytest.raises(ValidationError) as exc_info:
        await posting_engine.post(intent)
    assert exc_info.value.field == field

    async with uow_factory() as uow:
        assert await uow.vouchers.list() == []
        assert await uow.ledger.all() == []


@pytest.mark.asyncio
async def test_hotel_without_vendor_is_rejected(posting_engine, uow_factory, parties):
    intent = hotel_intent(parties)
    intent.vendor_id = None
    await assert_rejected(posting_engine, uow_factory, intent, "vendor_id")


@pytest.mark.asyncio
async def test_receipt_without_customer_is_rejected(posting_engine, uow_factory, parties):
    intent = ReceiptVoucherIntent(details=ReceiptDetails(bank_id=parties["bank"].id, amount=Decimal("10")))
    await assert_rejected(posting_engine, uow_factory, intent, "customer_id")


@pytest.mark.asyncio
async def test_non_positive_amount_is_rejected(posting_engine, uow_factory, parties):
    intent = TicketVoucherIntent(
        customer_id=parties["customer"].id,
        vendor_id=parties["vendor"].id,
        details=TicketDetails(amount=Decimal("0")),
    )
    await assert_rejected(posting_engine, uow_factory, intent, "details.amount")


@pytest.mark.asyncio
async def test_visa_needs_head_name(posting_engine, uow_factory, parties):
    intent = VisaVoucherIntent(
        customer_id=parties["customer"].id,
        vendor_id=parties["vendor"].id,
        details=VisaDetails(head_name="  ", amount=Decimal("100")),
    )
    await assert_rejected(posting_engine, uow_factory, intent, "details.head_name")


@pytest.mark.asyncio
async def test_payment_needs_lines(posting_engine, uow_factory, parties):
    intent = PaymentVoucherIntent(details=PaymentDetails(bank_id=parties["bank"].id, lines=[]))
    await assert_rejected(posting_engine, uow_factory, intent, "details.lines")


@pytest.mark.asyncio
async def test_payment_line_must_be_expense_or_vendor(posting_engine, uow_factory, parties):
    intent = PaymentVoucherIntent(details=PaymentDetails(
        bank_id=parties["bank"].id,
        lines=[PaymentLine(account_id=parties["customer"].id, amount=Decimal("10"))],
    ))
    await assert_rejected(posting_engine, uow_factory, intent, "details.lines[0].account_id")


@pytest.mark.asyncio
async def test_account_type_is_checked(posting_engine, uow_factory, parties):
    """A vendor cannot stand in as the customer."""
    intent = hotel_intent(parties)
    intent.customer_id = parties["vendor"].id
    await assert_rejected(posting_engine, uow_factory, intent, "customer_id")


@pytest.mark.asyncio
async def test_unknown_account_is_rejected(posting_engine, uow_factory, parties):
    intent = ReceiptVoucherIntent(
        customer_id=parties["customer"].id,
        details=ReceiptDetails(bank_id="no-such-bank", amount=Decimal("10")),
    )
    await assert_rejected(posting_engine, uow_factory, intent, "details.bank_id")


@pytest.mark.asyncio
async def test_foreign_currency_needs_positive_rate(posting_engine, uow_factory, parties):
    intent = TicketVoucherIntent(
        currency="SAR",
        roe=Decimal("0"),
        customer_id=parties["customer"].id,
        vendor_id=parties["vendor"].id,
        details=TicketDetails(amount=Decimal("100")),
    )
    await assert_rejected(posting_engine, uow_factory, intent, "roe")


@pytest.mark.asyncio
async def test_mismatched_split_is_rejected(posting_engine, uow_factory, parties):
    """Vendor + income must add up to the customer total."""
    intent = hotel_intent(parties, total="50000", vendor="40000", income="5000")
    await assert_rejected(posting_engine, uow_factory, intent, "details.vendor_amount_pkr")


@pytest.mark.asyncio
async def test_income_needs_revenue_account(posting_engine, uow_factory, parties):
    intent = hotel_intent(parties)
    intent.details.income_account_id = None
    await assert_rejected(posting_engine, uow_factory, intent, "details.income_account_id")


@pytest.mark.asyncio
async def test_negative_split_is_rejected(posting_engine, uow_factory, parties):
    intent = hotel_intent(parties, total="1000", vendor="1100", income="-100")
    await assert_rejected(posting_engine, uow_factory, intent, "details.income_amount_pkr")


@pytest.mark.asyncio
async def test_voucher_number_prefix_must_match_type(posting_engine, uow_factory, parties):
    intent = hotel_intent(parties, voucher_num="TK-2024-ABCDE")
    await assert_rejected(posting_engine, uow_factory, intent, "voucher_num")


@pytest.mark.asyncio
async def test_malformed_voucher_number_is_rejected(posting_engine, uow_factory, parties):
    intent = hotel_intent(parties, voucher_num="hv-24-1")
    await assert_rejected(posting_engine, uow_factory, intent, "voucher_num")


@pytest.mark.asyncio
async def test_explicit_voucher_number_is_kept(posting_engine, parties):
    voucher = await posting_engine.post(hotel_intent(parties, voucher_num="HV-2024-00042"))

    assert voucher.voucher_num == "HV-2024-00042"
    assert voucher.invoice_number == "00042"


@pytest.mark.asyncio
async def test_random_vouchers_keep_balance_invariant(posting_engine, uow_factory, parties):
    """Stored balance equals the sum of entries for every account after many postings."""
    rng = random.Random(7)
    for _ in range(25):
        amount = Decimal(rng.randint(100, 100000))
        kind = rng.choice(["RV", "HV", "VV", "PV"])
        if kind == "RV":
            intent = ReceiptVoucherIntent(
                customer_id=parties["customer"].id,
                details=ReceiptDetails(bank_id=parties["bank"].id, amount=amount),
            )
        elif kind == "HV":
            fee = (amount / 10).quantize(Decimal("0.01"))
            intent = hotel_intent(parties, total=str(amount), vendor=str(amount - fee), income=str(fee))
        elif kind == "VV":
            intent = VisaVoucherIntent(
                currency="SAR",
                roe=Decimal("74.35"),
                customer_id=parties["customer"].id,
                vendor_id=parties["vendor"].id,
                details=VisaDetails(head_name="Work Visa", amount=amount),
            )
        else:
            intent = PaymentVoucherIntent(details=PaymentDetails(
                bank_id=parties["cash"].id,
                lines=[PaymentLine(account_id=parties["office"].id, amount=amount)],
            ))
        await posting_engine.post(intent)

    async with uow_factory() as uow:
        accounts = await uow.accounts.list()
        entries = await uow.ledger.all()
        vouchers = await uow.vouchers.list()

    for account in accounts:
        expected = sum((Decimal(e.debit) - Decimal(e.credit) for e in entries if e.account_id == account.id), Decimal("0"))
        assert Decimal(account.balance) == expected, account.name

    for voucher in vouchers:
        own = [e for e in entries if e.voucher_id == voucher.id]
        assert sum(Decimal(e.debit) for e in own) == Decimal(voucher.total_amount_pkr)
        assert sum(Decimal(e.credit) for e in own) == Decimal(voucher.total_amount_pkr)


@pytest.mark.asyncio
async def test_registered_party_is_usable_immediately(posting_engine, parties):
    walk_in = await posting_engine.register_account(name="Walk-in Customer", type=AccountType.CUSTOMER)
    voucher = await posting_engine.post(TicketVoucherIntent(
        customer_id=walk_in.id,
        vendor_id=parties["vendor"].id,
        details=TicketDetails(amount=Decimal("1500")),
    ))

    assert voucher.customer_id == walk_in.id
