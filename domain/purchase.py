"""
Domain: purchases, favorites, feedback and purchase outcomes.

A PurchaseRecord is write-once and unique per (lead_id, account_id). Outcome
types model precondition results and bulk partitions as plain values rather
than exceptions, so partial failure is an ordinary return value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple
from uuid import UUID

from .money import ZERO
from .time import require_utc_timestamp


class BlockReason(str, Enum):
    NO_BILLING_ADDRESS = "NO_BILLING_ADDRESS"
    ALREADY_OWNED = "ALREADY_OWNED"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    # Bulk item never attempted because the caller stopped the run.
    ABANDONED = "ABANDONED"
    # Storage rejected the commit (conflict after retries or backend failure).
    COMMIT_FAILED = "COMMIT_FAILED"


# Caller-facing remediation per reason.
REMEDIATIONS = {
    BlockReason.NO_BILLING_ADDRESS: "open_billing_form",
    BlockReason.ALREADY_OWNED: "remove_from_view",
    BlockReason.INSUFFICIENT_BALANCE: "prompt_deposit",
    BlockReason.ABANDONED: "retry_purchase",
    BlockReason.COMMIT_FAILED: "retry_purchase",
}


@dataclass(frozen=True, slots=True)
class PurchaseRecord:
    """Ownership record created inside a successful purchase commit."""

    purchase_id: UUID
    lead_id: UUID
    account_id: UUID
    price: Decimal
    purchased_at: datetime
    transaction_id: Optional[UUID] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("purchased_at", self.purchased_at)


@dataclass(frozen=True, slots=True)
class Favorite:
    account_id: UUID
    lead_id: UUID
    created_at: datetime


class LeadResponsiveness(str, Enum):
    RESPONSIVE = "responsive"
    GHOSTED = "ghosted"
    PARTIAL = "partial"


@dataclass(frozen=True, slots=True)
class LeadFeedback:
    """Vendor feedback on a purchased lead; at most one per (account, lead)."""

    feedback_id: UUID
    account_id: UUID
    lead_id: UUID
    booked: bool
    lead_responsive: LeadResponsiveness
    created_at: datetime
    time_to_book: Optional[str] = None
    amount_charged: Optional[Decimal] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)


@dataclass(frozen=True, slots=True)
class PreconditionResult:
    """Either ready (``reason is None``) or blocked with exactly one reason."""

    reason: Optional[BlockReason] = None
    detail: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.reason is None

    @property
    def remediation(self) -> Optional[str]:
        return REMEDIATIONS[self.reason] if self.reason else None


READY = PreconditionResult()


@dataclass(frozen=True, slots=True)
class PurchaseFailure:
    lead_id: UUID
    reason: BlockReason
    detail: Optional[str] = None


@dataclass(frozen=True, slots=True)
class BulkPurchaseResult:
    """
    Complete partition of a bulk purchase.

    ``len(succeeded) + len(failed)`` always equals the number of leads that
    passed the pre-filter. Leads dropped by the pre-filter are listed in
    ``skipped``.
    """

    succeeded: Tuple[PurchaseRecord, ...] = ()
    failed: Tuple[PurchaseFailure, ...] = ()
    skipped: Tuple[PurchaseFailure, ...] = ()
    balance_at_start: Decimal = ZERO
    aggregate_cost: Decimal = ZERO
    total_paid: Decimal = ZERO

    @property
    def aggregate_affordable(self) -> bool:
        return self.balance_at_start >= self.aggregate_cost

    @property
    def eligible_count(self) -> int:
        return len(self.succeeded) + len(self.failed)


@dataclass
class BulkPurchaseBuilder:
    """Mutable accumulator used while a bulk run is in progress."""

    succeeded: List[PurchaseRecord] = field(default_factory=list)
    failed: List[PurchaseFailure] = field(default_factory=list)
    skipped: List[PurchaseFailure] = field(default_factory=list)

    def build(self, *, balance_at_start: Decimal, aggregate_cost: Decimal) -> BulkPurchaseResult:
        return BulkPurchaseResult(
            succeeded=tuple(self.succeeded),
            failed=tuple(self.failed),
            skipped=tuple(self.skipped),
            balance_at_start=balance_at_start,
            aggregate_cost=aggregate_cost,
            total_paid=sum((p.price for p in self.succeeded), ZERO),
        )
