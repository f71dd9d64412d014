"""
Application config database model.

Single-row table holding company identity, the default exchange rate and the bank list.
"""

from sqlalchemy import Column, Integer, String, DateTime, Numeric, JSON, Text
from sqlalchemy.sql import func
from travel_ledger.app.db.session import Base

CONFIG_ROW_ID = 1


class AppConfig(Base):
    """
    App config model.

    Read by the posting engine only for `default_roe`.
    """
    __tablename__ = "app_config"

    id = Column(Integer, primary_key=True, default=CONFIG_ROW_ID)

    company_name = Column(String(200), nullable=False)
    app_subtitle = Column(String(200), nullable=True)
    company_address = Column(String(500), nullable=True)
    company_phone = Column(String(50), nullable=True)
    company_logo = Column(Text, nullable=True)  # Base64

    default_roe = Column(Numeric(12, 4), nullable=False)
    banks = Column(JSON, nullable=False, default=list)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<AppConfig(company='{self.company_name}', default_roe={self.default_roe})>"
