"""
Bulk purchase orchestrator.

Drives the purchase executor over a list of leads, one at a time in request
order, and returns a complete succeeded/failed partition.

Policy:
- Pre-filter drops unknown, owned, inactive and non-AVAILABLE leads; they are
  reported as ``skipped`` and are not part of the partition.
- Billing is checked once for the whole run. Without a complete billing
  profile every eligible lead fails with NO_BILLING_ADDRESS and nothing is
  attempted.
- Aggregate affordability (sum of eligible prices) is evaluated once. In
  strict mode a shortfall fails every eligible lead up front; otherwise the
  run proceeds and leads fail individually once funds run out.
- One failure never stops the remaining attempts. A storage failure on one
  item (commit conflict after retries, backend error) is reported as
  COMMIT_FAILED for that lead; a ledger invariant violation aborts the run.
- The precondition snapshot is fixed at bulk start.

Invariant: len(succeeded) + len(failed) == number of eligible leads.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence
from uuid import UUID

from domain.errors import AccountNotFound, LeadNotFound, PurchaseRejected, StoreError
from domain.lead import Lead
from domain.purchase import BlockReason, BulkPurchaseBuilder, BulkPurchaseResult, PurchaseFailure
from repositories.store import MarketplaceStore
from services.precondition_service import PreconditionChain, ownership_check
from services.purchase_service import PurchaseExecutor

logger = logging.getLogger(__name__)


def _dedupe(lead_ids: Sequence[UUID]) -> List[UUID]:
    seen = set()
    ordered: List[UUID] = []
    for lead_id in lead_ids:
        if lead_id not in seen:
            seen.add(lead_id)
            ordered.append(lead_id)
    return ordered


class BulkPurchaseOrchestrator:
    def __init__(
        self,
        store: MarketplaceStore,
        executor: PurchaseExecutor,
        preconditions: PreconditionChain,
        *,
        strict_affordability: bool = False,
    ):
        self.store = store
        self.executor = executor
        self.preconditions = preconditions
        self.strict_affordability = strict_affordability

    def _prefilter(self, account_id: UUID, lead_ids: List[UUID], builder: BulkPurchaseBuilder) -> List[Lead]:
        leads = self.store.get_leads(lead_ids)
        owned = {record.lead_id for record in self.store.list_purchases(account_id)}

        eligible: List[Lead] = []
        for lead_id in lead_ids:
            lead = leads.get(lead_id)
            if lead is None:
                builder.skipped.append(PurchaseFailure(lead_id, BlockReason.ALREADY_OWNED, "Lead not found"))
                continue
            result = ownership_check(lead, lead_id in owned)
            if not result.ready:
                builder.skipped.append(PurchaseFailure(lead_id, result.reason, result.detail))
                continue
            eligible.append(lead)
        return eligible

    def purchase_many(
        self,
        account_id: UUID,
        lead_ids: Sequence[UUID],
        should_continue: Optional[Callable[[], bool]] = None,
    ) -> BulkPurchaseResult:
        """
        Purchase several leads sequentially.

        Args:
            account_id: Buyer
            lead_ids: Leads in the order they should be attempted (duplicates ignored)
            should_continue: Optional callable consulted between items; returning
                False abandons the remaining items (reported as ABANDONED).

        Returns:
            BulkPurchaseResult partitioning every eligible lead into succeeded/failed
        """

        if self.store.get_account(account_id) is None:
            raise AccountNotFound(account_id)

        builder = BulkPurchaseBuilder()
        eligible = self._prefilter(account_id, _dedupe(lead_ids), builder)
        snapshot = self.preconditions.check_bulk(account_id, eligible)

        def fail_all(reason: BlockReason, detail: Optional[str]) -> BulkPurchaseResult:
            builder.failed.extend(PurchaseFailure(lead.lead_id, reason, detail) for lead in eligible)
            logger.info(
                "Bulk purchase blocked",
                extra={"account_id": str(account_id), "reason": reason.value, "leads": len(eligible)},
            )
            return builder.build(balance_at_start=snapshot.balance, aggregate_cost=snapshot.aggregate_cost)

        if not eligible:
            return builder.build(balance_at_start=snapshot.balance, aggregate_cost=snapshot.aggregate_cost)
        if not snapshot.billing.ready:
            return fail_all(snapshot.billing.reason, snapshot.billing.detail)
        if not snapshot.affordability.ready:
            if self.strict_affordability:
                return fail_all(snapshot.affordability.reason, snapshot.affordability.detail)
            logger.info(
                "Bulk purchase exceeds balance, attempting sequentially",
                extra={
                    "account_id": str(account_id),
                    "balance": str(snapshot.balance),
                    "aggregate_cost": str(snapshot.aggregate_cost),
                },
            )

        for index, lead in enumerate(eligible):
            if should_continue is not None and not should_continue():
                builder.failed.extend(
                    PurchaseFailure(rest.lead_id, BlockReason.ABANDONED, "Bulk purchase stopped")
                    for rest in eligible[index:]
                )
                break
            try:
                receipt = self.executor.commit(account_id, lead.lead_id)
            except PurchaseRejected as e:
                builder.failed.append(PurchaseFailure(lead.lead_id, e.reason, e.detail))
            except LeadNotFound:
                builder.failed.append(PurchaseFailure(lead.lead_id, BlockReason.ALREADY_OWNED, "Lead not found"))
            except StoreError as e:
                builder.failed.append(PurchaseFailure(lead.lead_id, BlockReason.COMMIT_FAILED, str(e)))
                logger.warning(
                    "Bulk purchase item could not be committed",
                    extra={"account_id": str(account_id), "lead_id": str(lead.lead_id), "error": str(e)},
                )
            else:
                builder.succeeded.append(receipt.purchase)

        result = builder.build(balance_at_start=snapshot.balance, aggregate_cost=snapshot.aggregate_cost)
        logger.info(
            "Bulk purchase finished",
            extra={
                "account_id": str(account_id),
                "succeeded": len(result.succeeded),
                "failed": len(result.failed),
                "skipped": len(result.skipped),
                "total_paid": str(result.total_paid),
            },
        )
        return result


__all__ = ["BulkPurchaseOrchestrator"]
