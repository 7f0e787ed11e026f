"""
Domain exceptions.

Precondition and race outcomes are expected and user-recoverable
(PurchaseRejected). LedgerInvariantViolation is fatal and must never be
recovered automatically.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional
from uuid import UUID

from .purchase import REMEDIATIONS, BlockReason


class MarketplaceError(Exception):
    """Base exception for the purchase and ledger core."""


class PurchaseRejected(MarketplaceError):
    """A purchase was blocked by a precondition (checked up front or at commit time)."""

    def __init__(self, reason: BlockReason, lead_id: Optional[UUID] = None, detail: Optional[str] = None):
        self.reason = reason
        self.lead_id = lead_id
        self.detail = detail
        super().__init__(detail or reason.value)

    @property
    def remediation(self) -> str:
        return REMEDIATIONS[self.reason]


class InsufficientFunds(MarketplaceError):
    """A debit exceeded the committed balance. Nothing was written."""

    def __init__(self, account_id: UUID, balance: Decimal, required: Decimal):
        self.account_id = account_id
        self.balance = balance
        self.required = required
        super().__init__(f"Insufficient funds. Balance: ${balance:.2f}, Required: ${required:.2f}")


class InvalidAmount(MarketplaceError):
    pass


class AccountNotFound(MarketplaceError):
    def __init__(self, account_id: UUID):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class LeadNotFound(MarketplaceError):
    def __init__(self, lead_id: UUID):
        self.lead_id = lead_id
        super().__init__(f"Lead not found: {lead_id}")


class FeedbackError(MarketplaceError):
    """Feedback could not be accepted (not purchased, duplicate or invalid)."""

    def __init__(self, code: str, message: str):
        self.code = code
        super().__init__(message)


class LedgerInvariantViolation(MarketplaceError):
    """Balance math is inconsistent. Fatal; surfaced as an internal error."""


class StoreError(MarketplaceError):
    """Persistence backend failure."""


class CommitConflict(StoreError):
    """Optimistic commit lost a race; committed state changed since it was read."""
