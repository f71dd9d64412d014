"""
Account database model.

Customers, vendors, cash/bank, expense, equity and revenue heads share one flat table.
"""

import uuid
from decimal import Decimal
from sqlalchemy import Column, String, DateTime, Enum, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from travel_ledger.app.db.session import Base
from travel_ledger.app.models.enums import AccountType, Currency


def new_id() -> str:
    return str(uuid.uuid4())


class Account(Base):
    """
    Account model.

    `balance` is always in PKR regardless of `currency` and equals the sum of
    (debit - credit) over the account's ledger entries. It is only changed by
    the ledger repository, with atomic increments.
    """
    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=new_id)

    # Classification
    code = Column(String(20), unique=True, nullable=True, index=True)
    name = Column(String(200), nullable=False)
    type = Column(Enum(AccountType), nullable=False, index=True)
    currency = Column(Enum(Currency), default=Currency.PKR, nullable=False)

    # Contact details (customers / vendors)
    cell = Column(String(50), nullable=True)
    location = Column(String(200), nullable=True)

    # Financials
    balance = Column(Numeric(16, 2), default=Decimal("0"), nullable=False)

    entries = relationship("LedgerEntry", back_populates="account", foreign_keys="LedgerEntry.account_id", passive_deletes=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Account(id={self.id}, code='{self.code}', name='{self.name}', type='{self.type.value}')>"
