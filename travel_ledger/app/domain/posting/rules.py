"""
Posting rules (Domain Logic).

Pure expansion of a validated voucher intent into balanced entry drafts.
No I/O happens here: the engine loads every referenced account first and
passes them in, so all validation completes before anything is written.

| Type    | Debit                         | Credit                                  |
|---------|-------------------------------|-----------------------------------------|
| RV      | cash/bank                     | customer                                |
| HV, TV  | customer (total)              | vendor (total - income), revenue (income) |
| VV, TK  | customer                      | vendor                                  |
| PV      | one per line (expense/vendor) | cash/bank (sum of lines)                |
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Set, Tuple

from travel_ledger.app.core.exceptions import ValidationError
from travel_ledger.app.models.account import Account
from travel_ledger.app.models.enums import AccountType, Currency, VoucherType
from travel_ledger.app.schemas.voucher import (
    HotelVoucherIntent,
    PaymentVoucherIntent,
    ReceiptVoucherIntent,
    TicketVoucherIntent,
    TransportVoucherIntent,
    VisaVoucherIntent,
)

ZERO = Decimal("0")
CENT = Decimal("0.01")
ROE_STEP = Decimal("0.0001")


def to_money(value) -> Decimal:
    """Round half-up to the cent."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class EntryDraft:
    account_id: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: str = ""


@dataclass
class PostingPlan:
    """Everything the engine needs to persist one voucher."""
    voucher_type: VoucherType
    roe: Decimal
    total_amount_pkr: Decimal
    customer_id: Optional[str]
    vendor_id: Optional[str]
    entries: List[EntryDraft] = field(default_factory=list)

    @property
    def total_debit(self) -> Decimal:
        return sum((e.debit for e in self.entries), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((e.credit for e in self.entries), ZERO)


def resolve_roe(currency: Currency, roe: Optional[Decimal], default_roe: Optional[Decimal]) -> Decimal:
    """
    Local currency always converts at 1; foreign currency falls back to the configured default.

    The rate is rounded to the four places the voucher header stores, so the
    persisted total always equals amount x stored roe.
    """
    if currency == Currency.PKR:
        return Decimal("1")
    rate = roe if roe is not None else default_roe
    if rate is not None:
        rate = Decimal(str(rate)).quantize(ROE_STEP, rounding=ROUND_HALF_UP)
    if rate is None or rate <= 0:
        raise ValidationError("roe", f"A positive exchange rate is required for {currency.value} vouchers")
    return rate


def referenced_account_ids(intent) -> Set[str]:
    """Every account id the intent points at, so they can be loaded in one pass."""
    ids = {intent.customer_id, intent.vendor_id}
    details = intent.details
    if isinstance(intent, (ReceiptVoucherIntent, PaymentVoucherIntent)):
        ids.add(details.bank_id)
    if isinstance(intent, (HotelVoucherIntent, TransportVoucherIntent)):
        ids.add(details.income_account_id)
    if isinstance(intent, PaymentVoucherIntent):
        ids.update(line.account_id for line in details.lines)
    ids.discard(None)
    return ids


def _require_account(
    accounts: Dict[str, Account],
    account_id: Optional[str],
    field_name: str,
    expected: Iterable[AccountType],
    label: str,
) -> Account:
    expected = tuple(expected)
    if not account_id:
        raise ValidationError(field_name, f"{label} is required")
    account = accounts.get(account_id)
    if account is None:
        raise ValidationError(field_name, f"{label} {account_id} does not exist")
    if account.type not in expected:
        allowed = " or ".join(t.value for t in expected)
        raise ValidationError(field_name, f"{label} must be a {allowed} account, got {account.type.value}")
    return account


def _require_positive(amount: Decimal, field_name: str) -> Decimal:
    if amount is None or Decimal(amount) <= 0:
        raise ValidationError(field_name, "Amount must be greater than zero")
    return Decimal(amount)


def _customer(intent, accounts) -> Account:
    return _require_account(accounts, intent.customer_id, "customer_id", [AccountType.CUSTOMER], "Customer")


def _vendor(intent, accounts) -> Account:
    return _require_account(accounts, intent.vendor_id, "vendor_id", [AccountType.VENDOR], "Vendor")


def _bank(intent, accounts) -> Account:
    return _require_account(accounts, intent.details.bank_id, "details.bank_id", [AccountType.CASH_BANK], "Cash/bank account")


def _receipt(intent: ReceiptVoucherIntent, roe: Decimal, accounts, **_) -> Tuple[Decimal, List[EntryDraft]]:
    customer = _customer(intent, accounts)
    bank = _bank(intent, accounts)
    total = to_money(_require_positive(intent.details.amount, "details.amount") * roe)
    return total, [
        EntryDraft(bank.id, debit=total, description=intent.description),
        EntryDraft(customer.id, credit=total, description=intent.description),
    ]


def _split_service(intent, roe: Decimal, accounts, split_tolerance: Decimal) -> Tuple[Decimal, List[EntryDraft]]:
    """Hotel and transport: vendor cost plus an optional service-fee income leg."""
    customer = _customer(intent, accounts)
    vendor = _vendor(intent, accounts)
    details = intent.details

    total = to_money(_require_positive(details.total_amount, "details.total_amount") * roe)
    vendor_pkr = to_money(details.vendor_amount_pkr) if details.vendor_amount_pkr is not None else total
    income_pkr = to_money(details.income_amount_pkr) if details.income_amount_pkr is not None else ZERO

    if vendor_pkr < 0:
        raise ValidationError("details.vendor_amount_pkr", "Vendor amount cannot be negative")
    if income_pkr < 0:
        raise ValidationError("details.income_amount_pkr", "Income amount cannot be negative")
    if income_pkr > total:
        raise ValidationError("details.income_amount_pkr", "Income amount cannot exceed the voucher total")
    if abs(vendor_pkr + income_pkr - total) > split_tolerance:
        raise ValidationError(
            "details.vendor_amount_pkr",
            f"Vendor amount {vendor_pkr} plus income {income_pkr} does not equal the total {total}",
        )

    entries = [EntryDraft(customer.id, debit=total, description=intent.description)]
    # Sub-cent residual goes to the vendor leg so the voucher balances exactly
    vendor_leg = total - income_pkr
    if vendor_leg > 0:
        entries.append(EntryDraft(vendor.id, credit=vendor_leg, description=intent.description))
    if income_pkr > 0:
        income = _require_account(
            accounts, details.income_account_id, "details.income_account_id", [AccountType.REVENUE], "Income account"
        )
        entries.append(EntryDraft(income.id, credit=income_pkr, description=intent.description))
    return total, entries


def _pass_through(intent, roe: Decimal, accounts, **_) -> Tuple[Decimal, List[EntryDraft]]:
    """Visa and ticket: the whole amount passes from customer to vendor."""
    customer = _customer(intent, accounts)
    vendor = _vendor(intent, accounts)
    if isinstance(intent, VisaVoucherIntent) and not intent.details.head_name.strip():
        raise ValidationError("details.head_name", "Visa head name is required")
    total = to_money(_require_positive(intent.details.amount, "details.amount") * roe)
    return total, [
        EntryDraft(customer.id, debit=total, description=intent.description),
        EntryDraft(vendor.id, credit=total, description=intent.description),
    ]


def _payment(intent: PaymentVoucherIntent, roe: Decimal, accounts, **_) -> Tuple[Decimal, List[EntryDraft]]:
    bank = _bank(intent, accounts)
    if not intent.details.lines:
        raise ValidationError("details.lines", "A payment needs at least one line")

    entries = []
    for index, line in enumerate(intent.details.lines):
        account = _require_account(
            accounts,
            line.account_id,
            f"details.lines[{index}].account_id",
            [AccountType.EXPENSE, AccountType.VENDOR],
            "Payment line account",
        )
        amount = to_money(_require_positive(line.amount, f"details.lines[{index}].amount") * roe)
        entries.append(EntryDraft(account.id, debit=amount, description=line.description or intent.description))

    total = sum((e.debit for e in entries), ZERO)
    entries.append(EntryDraft(bank.id, credit=total, description=intent.description))
    return total, entries


RULES = {
    VoucherType.RECEIPT: _receipt,
    VoucherType.HOTEL: _split_service,
    VoucherType.TRANSPORT: _split_service,
    VoucherType.VISA: _pass_through,
    VoucherType.TICKET: _pass_through,
    VoucherType.PAYMENT: _payment,
}


def ensure_balanced(plan: PostingPlan) -> None:
    """Debits must equal credits must equal the header total, to the cent."""
    if not (plan.total_debit == plan.total_credit == plan.total_amount_pkr):
        raise ValidationError(
            "details",
            f"Derived entries do not balance: debit {plan.total_debit}, credit {plan.total_credit}, "
            f"total {plan.total_amount_pkr}",
        )
    for entry in plan.entries:
        if (entry.debit > 0) == (entry.credit > 0) or entry.debit < 0 or entry.credit < 0:
            raise ValidationError("details", f"Invalid entry for account {entry.account_id}")


def expand(
    intent,
    roe: Decimal,
    accounts: Dict[str, Account],
    split_tolerance: Decimal = CENT,
) -> PostingPlan:
    """
    Validate an intent against its loaded accounts and derive its entries.

    Raises:
        ValidationError: naming the first offending field
    """
    voucher_type = VoucherType(intent.type)
    rule = RULES[voucher_type]
    total, entries = rule(intent, roe, accounts, split_tolerance=split_tolerance)

    customer_id = intent.customer_id if voucher_type != VoucherType.PAYMENT else None
    vendor_id = intent.vendor_id if voucher_type not in (VoucherType.RECEIPT, VoucherType.PAYMENT) else None

    plan = PostingPlan(
        voucher_type=voucher_type,
        roe=roe,
        total_amount_pkr=total,
        customer_id=customer_id,
        vendor_id=vendor_id,
        entries=entries,
    )
    ensure_balanced(plan)
    return plan
