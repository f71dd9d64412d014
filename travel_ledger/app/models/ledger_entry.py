"""
Ledger Entry database model.

Double-entry accounting records derived by the posting engine.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, ForeignKey, DateTime, Date, Numeric, CheckConstraint
from sqlalchemy.orm import relationship
from travel_ledger.app.db.session import Base
from travel_ledger.app.models.account import new_id


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LedgerEntry(Base):
    """
    Ledger Entry model.

    Exactly one of debit/credit is non-zero. Entries are never edited: an
    edited voucher has all of its entries removed and re-derived.
    The voucher number is not stored here; it is joined from the voucher at
    read time. Opening-balance entries have no voucher and carry
    `opening_for_account_id` on both legs of the pair.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        CheckConstraint("debit >= 0 AND credit >= 0", name="ck_ledger_entries_non_negative"),
        CheckConstraint("(debit = 0) <> (credit = 0)", name="ck_ledger_entries_one_side"),
    )

    id = Column(String(36), primary_key=True, default=new_id)

    # Linkage
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    voucher_id = Column(String(36), ForeignKey("vouchers.id"), nullable=True, index=True)
    opening_for_account_id = Column(String(36), nullable=True, index=True)

    # Entry details
    date = Column(Date, nullable=False, index=True)
    description = Column(String(500), nullable=True)

    # Financials (PKR)
    debit = Column(Numeric(16, 2), nullable=False, default=0)
    credit = Column(Numeric(16, 2), nullable=False, default=0)

    account = relationship("Account", back_populates="entries", foreign_keys=[account_id])
    voucher = relationship("Voucher")

    # Microsecond resolution; orders entries posted on the same date
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    @property
    def net(self):
        return self.debit - self.credit

    def __repr__(self):
        return f"<LedgerEntry(id={self.id}, account={self.account_id}, dr={self.debit}, cr={self.credit})>"
