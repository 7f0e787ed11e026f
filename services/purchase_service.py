"""
Purchase executor for single leads.

Handles:
- Full precondition chain before opening a unit of work
- Commit-time re-validation of ownership and affordability
- Debit, SOLD transition and ownership record in one unit of work

A commit-time InsufficientFunds is an expected race outcome and is reported
as INSUFFICIENT_BALANCE, exactly like the up-front check.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable
from uuid import UUID, uuid4

from domain.errors import InsufficientFunds, LeadNotFound, PurchaseRejected
from domain.lead import Lead
from domain.ledger import TransactionType
from domain.purchase import BlockReason, PurchaseRecord
from domain.time import utc_now
from repositories.store import MarketplaceStore, UnitOfWork
from services.ledger_service import LedgerService
from services.precondition_service import (
    PreconditionChain,
    affordability_check,
    first_blocking,
    ownership_check,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PurchaseReceipt:
    """
    Result of a committed purchase.

    purchase: ownership record
    balance_after: account balance right after the debit
    lead: the lead as committed (status SOLD, full_info revealed to the buyer)
    """

    purchase: PurchaseRecord
    balance_after: Decimal
    lead: Lead


class PurchaseExecutor:
    def __init__(
        self,
        store: MarketplaceStore,
        ledger: LedgerService,
        preconditions: PreconditionChain,
        *,
        clock: Callable[[], datetime] = utc_now,
        commit_attempts: int = 1,
    ):
        self.store = store
        self.ledger = ledger
        self.preconditions = preconditions
        self.clock = clock
        self.commit_attempts = commit_attempts

    def purchase(self, account_id: UUID, lead_id: UUID) -> PurchaseReceipt:
        """
        Purchase one lead.

        Process:
        1. Run the precondition chain (billing, ownership, affordability)
        2. Open a unit of work locking the account and the lead
        3. Re-validate ownership and affordability against committed state
        4. Debit the price, mark the lead SOLD, insert the purchase record

        Raises:
            LeadNotFound: unknown lead id
            AccountNotFound: unknown account id
            PurchaseRejected: a precondition failed, up front or at commit time
        """

        lead = self.store.get_lead(lead_id)
        if lead is None:
            raise LeadNotFound(lead_id)

        result = self.preconditions.check_purchase(account_id, lead)
        if not result.ready:
            raise PurchaseRejected(result.reason, lead_id, result.detail)

        return self.commit(account_id, lead_id)

    def commit(self, account_id: UUID, lead_id: UUID) -> PurchaseReceipt:
        """
        Steps 3-4 only. Used directly by the bulk orchestrator, whose billing
        check is a snapshot taken at bulk start.
        """

        receipt = self.store.run_atomic(
            account_id,
            lambda uow: self._commit_in(uow, lead_id),
            lead_ids=(lead_id,),
            attempts=self.commit_attempts,
        )
        logger.info(
            "Lead purchased",
            extra={
                "account_id": str(account_id),
                "lead_id": str(lead_id),
                "amount": str(receipt.purchase.price),
                "new_balance": str(receipt.balance_after),
            },
        )
        return receipt

    def _commit_in(self, uow: UnitOfWork, lead_id: UUID) -> PurchaseReceipt:
        lead = uow.get_lead(lead_id)
        if lead is None:
            raise LeadNotFound(lead_id)

        result = first_blocking(
            (
                ownership_check(lead, uow.has_purchase(lead_id)),
                affordability_check(uow.account.balance, lead.price),
            )
        )
        if not result.ready:
            logger.info(
                "Purchase rejected at commit",
                extra={
                    "account_id": str(uow.account.account_id),
                    "lead_id": str(lead_id),
                    "reason": result.reason.value,
                },
            )
            raise PurchaseRejected(result.reason, lead_id, result.detail)

        try:
            txn = self.ledger.post_debit(
                uow,
                lead.price,
                TransactionType.PURCHASE,
                description=f"Lead purchase {str(lead_id)[:8]}",
                metadata={"lead_id": str(lead_id)},
            )
        except InsufficientFunds as e:
            raise PurchaseRejected(BlockReason.INSUFFICIENT_BALANCE, lead_id, str(e)) from e

        sold = lead.sold()
        uow.save_lead(sold)
        record = PurchaseRecord(
            purchase_id=uuid4(),
            lead_id=lead_id,
            account_id=uow.account.account_id,
            price=lead.price,
            purchased_at=txn.created_at,
            transaction_id=txn.transaction_id,
        )
        uow.add_purchase(record)
        return PurchaseReceipt(purchase=record, balance_after=txn.balance_after, lead=sold)


__all__ = ["PurchaseExecutor", "PurchaseReceipt"]
