"""
App config schemas.
"""

from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional, List


class BankInfo(BaseModel):
    id: str
    name: str
    account_number: str = ""


class AppConfigResponse(BaseModel):
    """Schema for displaying the app config."""
    company_name: str
    app_subtitle: Optional[str]
    company_address: Optional[str]
    company_phone: Optional[str]
    company_logo: Optional[str]
    default_roe: Decimal
    banks: List[BankInfo]

    class Config:
        from_attributes = True


class AppConfigUpdate(BaseModel):
    """Schema for updating the app config. Omitted fields are left as they are."""
    company_name: Optional[str] = Field(None, min_length=1, max_length=200)
    app_subtitle: Optional[str] = Field(None, max_length=200)
    company_address: Optional[str] = Field(None, max_length=500)
    company_phone: Optional[str] = Field(None, max_length=50)
    company_logo: Optional[str] = None
    default_roe: Optional[Decimal] = Field(None, gt=0)
    banks: Optional[List[BankInfo]] = None
