"""
Audit Log Database Model.

Tracks every write to the books for review and reconciliation.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from travel_ledger.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model.

    Events logged:
    - ACCOUNT_REGISTERED / ACCOUNT_UPDATED / ACCOUNT_DELETED
    - VOUCHER_POSTED / VOUCHER_UPDATED / VOUCHER_DELETED / VOUCHER_VOIDED
    - CONFIG_UPDATED
    - DATABASE_IMPORTED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # What it was performed on
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(String(36), index=True, nullable=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    # Timestamp
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', entity={self.entity_type}:{self.entity_id})>"
