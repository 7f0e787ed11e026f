"""
Domain: vendor accounts and billing profiles.

An Account carries the authoritative balance. Only the ledger service produces
new Account snapshots with a different balance; everything else reads it.

BillingProfile rows are written by onboarding. This core only asks whether a
profile is complete enough to allow purchasing.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from .money import ZERO, to_money
from .time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class Account:
    """Vendor account snapshot. ``balance`` is never negative."""

    account_id: UUID
    balance: Decimal = ZERO
    business_name: Optional[str] = None
    email: Optional[str] = None
    vendor_type: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "balance", to_money(self.balance))
        if self.balance < ZERO:
            raise ValueError("balance must not be negative")
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)

    def with_balance(self, balance: Decimal) -> "Account":
        return replace(self, balance=balance)


_REQUIRED_ADDRESS_FIELDS = ("address_line1", "city", "state", "zip")


def _filled(value: Optional[str]) -> bool:
    return bool(value and value.strip())


@dataclass(frozen=True, slots=True)
class BillingProfile:
    """
    Billing address captured during onboarding.

    Complete means: address_line1, city, state and zip are present, plus either a
    company name or both first and last name.
    """

    account_id: UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_name: Optional[str] = None
    is_company: bool = False
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = "US"

    def missing_fields(self) -> List[str]:
        missing = [name for name in _REQUIRED_ADDRESS_FIELDS if not _filled(getattr(self, name))]
        has_person = _filled(self.first_name) and _filled(self.last_name)
        if not (has_person or _filled(self.company_name)):
            missing.append("company_name" if self.is_company else "name")
        return missing

    def is_complete(self) -> bool:
        return not self.missing_fields()
