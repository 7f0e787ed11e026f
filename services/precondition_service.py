"""
Precondition chain for purchases.

Checks run in a fixed order and stop at the first failure:
1. billing profile complete            -> NO_BILLING_ADDRESS
2. lead not owned, AVAILABLE, active   -> ALREADY_OWNED
3. balance covers the price            -> INSUFFICIENT_BALANCE

Each reason has its own remediation; reasons are never merged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Sequence
from uuid import UUID

from domain.account import BillingProfile
from domain.errors import AccountNotFound
from domain.lead import Lead
from domain.money import ZERO
from domain.purchase import READY, BlockReason, PreconditionResult
from repositories.store import MarketplaceStore

logger = logging.getLogger(__name__)


def billing_check(profile: Optional[BillingProfile]) -> PreconditionResult:
    if profile is None:
        return PreconditionResult(BlockReason.NO_BILLING_ADDRESS, "No billing address on file")
    missing = profile.missing_fields()
    if missing:
        return PreconditionResult(
            BlockReason.NO_BILLING_ADDRESS, f"Billing address incomplete: {', '.join(missing)}"
        )
    return READY


def ownership_check(lead: Lead, already_owned: bool) -> PreconditionResult:
    if already_owned:
        return PreconditionResult(BlockReason.ALREADY_OWNED, "You have already purchased this lead")
    if not lead.active:
        return PreconditionResult(BlockReason.ALREADY_OWNED, "Lead is no longer listed")
    if not lead.is_purchasable:
        return PreconditionResult(BlockReason.ALREADY_OWNED, "Lead is no longer available")
    return READY


def affordability_check(balance: Decimal, cost: Decimal) -> PreconditionResult:
    if balance < cost:
        return PreconditionResult(
            BlockReason.INSUFFICIENT_BALANCE,
            f"Insufficient funds. Balance: ${balance:.2f}, Required: ${cost:.2f}",
        )
    return READY


@dataclass(frozen=True, slots=True)
class BulkPreconditions:
    """Snapshot taken once at the start of a bulk purchase."""

    billing: PreconditionResult
    affordability: PreconditionResult
    balance: Decimal
    aggregate_cost: Decimal


class PreconditionChain:
    def __init__(self, store: MarketplaceStore):
        self.store = store

    def _balance(self, account_id: UUID) -> Decimal:
        account = self.store.get_account(account_id)
        if account is None:
            raise AccountNotFound(account_id)
        return account.balance

    def check_purchase(self, account_id: UUID, lead: Lead) -> PreconditionResult:
        """
        Evaluate the full chain for one lead against committed state.

        Returns READY or the first blocking result.
        """

        balance = self._balance(account_id)
        owned = self.store.get_purchase(account_id, lead.lead_id) is not None
        result = first_blocking(
            (
                billing_check(self.store.get_billing_profile(account_id)),
                ownership_check(lead, owned),
                affordability_check(balance, lead.price),
            )
        )
        if not result.ready:
            logger.info(
                "Purchase blocked",
                extra={"account_id": str(account_id), "lead_id": str(lead.lead_id), "reason": result.reason.value},
            )
        return result

    def check_bulk(self, account_id: UUID, leads: Sequence[Lead]) -> BulkPreconditions:
        """
        Billing once, then affordability against the sum of prices.

        ``leads`` must already be pre-filtered to still-eligible leads.
        """

        balance = self._balance(account_id)
        cost = sum((lead.price for lead in leads), ZERO)
        return BulkPreconditions(
            billing=billing_check(self.store.get_billing_profile(account_id)),
            affordability=affordability_check(balance, cost),
            balance=balance,
            aggregate_cost=cost,
        )


def first_blocking(results: Iterable[PreconditionResult]) -> PreconditionResult:
    for result in results:
        if not result.ready:
            return result
    return READY


__all__ = [
    "BulkPreconditions",
    "PreconditionChain",
    "affordability_check",
    "billing_check",
    "first_blocking",
    "ownership_check",
]
