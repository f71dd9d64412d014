"""
Voucher numbers: `<CODE>-<YEAR>-<SUFFIX>`, e.g. `HV-2024-7K2QD`.

The suffix is random, so uniqueness is enforced by the store's unique
constraint rather than by a counter.
"""

import re
import secrets
import string
from datetime import date

from travel_ledger.app.core.exceptions import ValidationError
from travel_ledger.app.models.enums import VoucherType

SUFFIX_ALPHABET = string.digits + string.ascii_uppercase
SUFFIX_LENGTH = 5

VOUCHER_NUM_PATTERN = re.compile(r"^(?P<code>[A-Z]{2})-(?P<year>\d{4})-(?P<suffix>[0-9A-Z]+)$")


def generate_voucher_num(voucher_type: VoucherType, voucher_date: date) -> str:
    suffix = "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{voucher_type.value}-{voucher_date.year}-{suffix}"


def check_voucher_num(voucher_num: str, voucher_type: VoucherType) -> str:
    """Validate a caller-supplied number; the type prefix must match the voucher type."""
    match = VOUCHER_NUM_PATTERN.match(voucher_num or "")
    if not match:
        raise ValidationError("voucher_num", f"Voucher number '{voucher_num}' is not of the form CODE-YEAR-SUFFIX")
    if match.group("code") != voucher_type.value:
        raise ValidationError(
            "voucher_num",
            f"Voucher number prefix '{match.group('code')}' does not match voucher type {voucher_type.value}",
        )
    return voucher_num
