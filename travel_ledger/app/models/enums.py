"""
Bookkeeping enumerations.

Defines account types, voucher types, voucher status and the two supported currencies.
"""

import enum


class AccountType(str, enum.Enum):
    """
    Account type enumeration.

    Types:
        CUSTOMER: Receivable party (code prefix 11)
        VENDOR: Payable party (code prefix 21)
        CASH_BANK: Cash in hand and bank accounts
        EXPENSE: Operating expense heads
        EQUITY: Capital and reserves (includes the Opening Balance Reserve)
        REVENUE: Service income heads
    """
    CUSTOMER = "CUSTOMER"
    VENDOR = "VENDOR"
    CASH_BANK = "CASH_BANK"
    EXPENSE = "EXPENSE"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"


class VoucherType(str, enum.Enum):
    """Voucher type enumeration. Values are the two-letter voucher codes."""
    RECEIPT = "RV"
    HOTEL = "HV"
    TRANSPORT = "TV"
    VISA = "VV"
    TICKET = "TK"
    PAYMENT = "PV"


# Voucher types whose totals count as income in the profit & loss statement
REVENUE_VOUCHER_TYPES = (
    VoucherType.HOTEL,
    VoucherType.TRANSPORT,
    VoucherType.VISA,
    VoucherType.TICKET,
)


class VoucherStatus(str, enum.Enum):
    """Voucher status enumeration."""
    POSTED = "POSTED"  # Entries exist and balance
    VOID = "VOID"  # Header kept for the record, entries removed


class Currency(str, enum.Enum):
    """Supported currencies. PKR is the local (reporting) currency."""
    PKR = "PKR"
    SAR = "SAR"
