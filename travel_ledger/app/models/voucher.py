"""
Voucher database model.

Voucher headers, independent of their ledger effects.
"""

from sqlalchemy import Column, String, ForeignKey, DateTime, Date, Enum, Numeric, JSON, Text
from sqlalchemy.sql import func
from travel_ledger.app.db.session import Base
from travel_ledger.app.models.account import new_id
from travel_ledger.app.models.enums import VoucherType, VoucherStatus, Currency


class Voucher(Base):
    """
    Voucher model.

    `total_amount_pkr` is the authoritative amount: for a POSTED voucher it
    equals the sum of its debit entries and the sum of its credit entries.
    `details` holds the type-specific payload exactly as the intent carried it.
    """
    __tablename__ = "vouchers"

    id = Column(String(36), primary_key=True, default=new_id)

    type = Column(Enum(VoucherType), nullable=False, index=True)
    voucher_num = Column(String(32), unique=True, nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)

    # Currency conversion
    currency = Column(Enum(Currency), nullable=False)
    roe = Column(Numeric(12, 4), nullable=False, default=1)
    total_amount_pkr = Column(Numeric(16, 2), nullable=False)

    description = Column(Text, nullable=False, default="")
    status = Column(Enum(VoucherStatus), default=VoucherStatus.POSTED, nullable=False, index=True)
    reference = Column(String(100), nullable=True)

    # Parties
    customer_id = Column(String(36), ForeignKey("accounts.id"), nullable=True, index=True)
    vendor_id = Column(String(36), ForeignKey("accounts.id"), nullable=True, index=True)

    details = Column(JSON, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def invoice_number(self) -> str:
        """Display-only invoice number: the trailing segment of the voucher number."""
        return self.voucher_num.split("-")[-1]

    def __repr__(self):
        return f"<Voucher(id={self.id}, num='{self.voucher_num}', status='{self.status.value}', total={self.total_amount_pkr})>"
