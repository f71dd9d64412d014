"""
Voucher schemas.

A voucher intent is a tagged union keyed by `type` (the two-letter voucher
code). Each variant carries a fixed `details` record. Shapes are checked here;
business preconditions (required parties, positive amounts, balanced splits)
are checked by the posting engine so that they surface as ValidationError.
"""

import datetime as dt
from decimal import Decimal
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from travel_ledger.app.models.enums import Currency, VoucherStatus, VoucherType


# Details payloads

class ReceiptDetails(BaseModel):
    """Money received from a customer into a cash/bank account."""
    bank_id: Optional[str] = None
    amount: Decimal = Decimal("0")


class HotelDetails(BaseModel):
    """Hotel booking. Split amounts are precomputed in PKR by the caller."""
    pax_name: str = ""
    hotel_name: str = ""
    city: str = ""
    country: str = ""
    room_type: str = ""
    num_rooms: int = Field(1, ge=0)
    num_nights: int = Field(0, ge=0)
    unit_rate: Decimal = Decimal("0")
    service_fee: Decimal = Decimal("0")
    from_date: Optional[dt.date] = None
    to_date: Optional[dt.date] = None
    meals: List[str] = Field(default_factory=list)
    adults: int = Field(2, ge=0)
    children: int = Field(0, ge=0)

    total_amount: Decimal = Decimal("0")  # vendor subtotal + service fee, voucher currency
    vendor_amount_pkr: Optional[Decimal] = None
    income_amount_pkr: Optional[Decimal] = None
    income_account_id: Optional[str] = None


class TransportItem(BaseModel):
    """One itinerary leg."""
    sector: str = ""
    vehicle: str = "Car"
    rate: Decimal = Decimal("0")
    custom_label: str = ""


class TransportDetails(BaseModel):
    """Ground transport itinerary. Split amounts are precomputed in PKR by the caller."""
    pax_name: str = ""
    items: List[TransportItem] = Field(default_factory=list)
    service_fee: Decimal = Decimal("0")

    total_amount: Decimal = Decimal("0")
    vendor_amount_pkr: Optional[Decimal] = None
    income_amount_pkr: Optional[Decimal] = None
    income_account_id: Optional[str] = None


class VisaDetails(BaseModel):
    head_name: str = ""
    pax_name: str = ""
    passport_number: str = ""
    amount: Decimal = Decimal("0")


class TicketDetails(BaseModel):
    pax_name: str = ""
    airline: str = ""
    sector: str = ""
    amount: Decimal = Decimal("0")


class PaymentLine(BaseModel):
    """One expense (or vendor) debit line."""
    account_id: Optional[str] = None
    amount: Decimal = Decimal("0")
    description: str = ""


class PaymentDetails(BaseModel):
    """N debit lines funded from a single cash/bank account."""
    bank_id: Optional[str] = None
    lines: List[PaymentLine] = Field(default_factory=list)


# Intents

class VoucherIntentBase(BaseModel):
    """Fields shared by every voucher type."""
    voucher_num: Optional[str] = Field(None, max_length=32)
    date: dt.date = Field(default_factory=dt.date.today)
    currency: Currency = Currency.PKR
    roe: Optional[Decimal] = None
    reference: Optional[str] = Field(None, max_length=100)
    description: str = ""
    customer_id: Optional[str] = None
    vendor_id: Optional[str] = None


class ReceiptVoucherIntent(VoucherIntentBase):
    type: Literal["RV"] = "RV"
    details: ReceiptDetails = Field(default_factory=ReceiptDetails)


class HotelVoucherIntent(VoucherIntentBase):
    type: Literal["HV"] = "HV"
    details: HotelDetails = Field(default_factory=HotelDetails)


class TransportVoucherIntent(VoucherIntentBase):
    type: Literal["TV"] = "TV"
    details: TransportDetails = Field(default_factory=TransportDetails)


class VisaVoucherIntent(VoucherIntentBase):
    type: Literal["VV"] = "VV"
    details: VisaDetails = Field(default_factory=VisaDetails)


class TicketVoucherIntent(VoucherIntentBase):
    type: Literal["TK"] = "TK"
    details: TicketDetails = Field(default_factory=TicketDetails)


class PaymentVoucherIntent(VoucherIntentBase):
    type: Literal["PV"] = "PV"
    details: PaymentDetails = Field(default_factory=PaymentDetails)


VoucherIntentUnion = Union[
    ReceiptVoucherIntent,
    HotelVoucherIntent,
    TransportVoucherIntent,
    VisaVoucherIntent,
    TicketVoucherIntent,
    PaymentVoucherIntent,
]

VoucherIntent = Annotated[VoucherIntentUnion, Field(discriminator="type")]


voucher_intent_adapter = TypeAdapter(VoucherIntent)


# Responses

class VoucherResponse(BaseModel):
    """Schema for displaying a voucher header."""
    id: str
    type: VoucherType
    voucher_num: str
    invoice_number: str
    date: dt.date
    currency: Currency
    roe: Decimal
    total_amount_pkr: Decimal
    description: str
    status: VoucherStatus
    reference: Optional[str]
    customer_id: Optional[str]
    vendor_id: Optional[str]
    details: Optional[dict]
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class VoucherListResponse(BaseModel):
    """Schema for voucher list."""
    vouchers: List[VoucherResponse]
    total: int


class VoucherEntryResponse(BaseModel):
    """One ledger effect of a voucher."""
    id: str
    account_id: str
    date: dt.date
    description: Optional[str]
    debit: Decimal
    credit: Decimal

    class Config:
        from_attributes = True


class VoucherDetailResponse(VoucherResponse):
    """Voucher header with its current entries (empty when void)."""
    entries: List[VoucherEntryResponse]
