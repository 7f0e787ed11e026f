"""
Tests for `services/precondition_service.py` and `services/purchase_service.py`.

Covers contract rules:
- preconditions run billing -> ownership -> affordability and stop at the first failure.
- a successful purchase debits exactly the price, marks the lead SOLD and
  records ownership in one commit.
- ownership and affordability are re-checked at commit time.
- concurrent purchases for one account never overdraw it.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import ACCOUNT_ID, OTHER_ACCOUNT_ID, complete_billing
from domain.account import BillingProfile
from domain.errors import LeadNotFound, PurchaseRejected
from domain.lead import LeadStatus
from domain.ledger import TransactionType
from domain.purchase import BlockReason


def test_purchase_success(funded) -> None:
    lead = funded.add_lead("20.00")

    receipt = funded.executor.purchase(ACCOUNT_ID, lead.lead_id)

    assert receipt.balance_after == Decimal("80.00")
    assert receipt.purchase.price == Decimal("20.00")
    assert receipt.lead.full_info["phone"] == "+1 512 555 0100"
    assert funded.store.get_lead(lead.lead_id).status is LeadStatus.SOLD
    assert funded.store.get_purchase(ACCOUNT_ID, lead.lead_id) == receipt.purchase

    txn = funded.store.list_transactions(ACCOUNT_ID, newest_first=True)[0]
    assert txn.type is TransactionType.PURCHASE
    assert txn.amount == Decimal("-20.00")
    assert txn.metadata == {"lead_id": str(lead.lead_id)}
    assert receipt.purchase.transaction_id == txn.transaction_id
    assert funded.ledger.audit(ACCOUNT_ID) == Decimal("80.00")


def test_purchase_exact_balance(funded) -> None:
    lead = funded.add_lead("100.00")

    assert funded.executor.purchase(ACCOUNT_ID, lead.lead_id).balance_after == Decimal("0.00")


def test_billing_is_checked_first(market) -> None:
    market.add_account(ACCOUNT_ID, balance="0.00", billing=False)
    lead = market.add_lead("20.00")

    with pytest.raises(PurchaseRejected) as exc_info:
        market.executor.purchase(ACCOUNT_ID, lead.lead_id)

    assert exc_info.value.reason is BlockReason.NO_BILLING_ADDRESS
    assert exc_info.value.remediation == "open_billing_form"
    assert market.store.count_transactions(ACCOUNT_ID) == 0


def test_incomplete_billing_lists_missing_fields(funded) -> None:
    funded.store.save_billing_profile(BillingProfile(account_id=ACCOUNT_ID, first_name="Ava", last_name="Reyes"))
    lead = funded.add_lead()

    result = funded.preconditions.check_purchase(ACCOUNT_ID, lead)

    assert result.reason is BlockReason.NO_BILLING_ADDRESS
    assert "address_line1" in result.detail
    assert result.remediation == "open_billing_form"


def test_ownership_is_checked_before_affordability(funded) -> None:
    lead = funded.add_lead("60.00")
    funded.executor.purchase(ACCOUNT_ID, lead.lead_id)

    with pytest.raises(PurchaseRejected) as exc_info:
        funded.executor.purchase(ACCOUNT_ID, lead.lead_id)

    assert exc_info.value.reason is BlockReason.ALREADY_OWNED
    assert exc_info.value.remediation == "remove_from_view"
    assert funded.ledger.balance(ACCOUNT_ID) == Decimal("40.00")
    assert funded.store.count_purchases_for_lead(lead.lead_id) == 1


def test_insufficient_balance(funded) -> None:
    lead = funded.add_lead("100.01")

    with pytest.raises(PurchaseRejected) as exc_info:
        funded.executor.purchase(ACCOUNT_ID, lead.lead_id)

    assert exc_info.value.reason is BlockReason.INSUFFICIENT_BALANCE
    assert exc_info.value.remediation == "prompt_deposit"
    assert funded.store.get_lead(lead.lead_id).status is LeadStatus.AVAILABLE
    assert funded.store.get_purchase(ACCOUNT_ID, lead.lead_id) is None


def test_sold_or_inactive_lead_is_rejected(funded) -> None:
    inactive = funded.add_lead(active=False)
    sold = funded.add_lead(status=LeadStatus.SOLD)

    for lead in (inactive, sold):
        with pytest.raises(PurchaseRejected) as exc_info:
            funded.executor.purchase(ACCOUNT_ID, lead.lead_id)
        assert exc_info.value.reason is BlockReason.ALREADY_OWNED


def test_unknown_lead(funded) -> None:
    with pytest.raises(LeadNotFound):
        funded.executor.purchase(ACCOUNT_ID, uuid4())


def test_commit_rechecks_balance_after_precondition_pass(funded) -> None:
    lead = funded.add_lead("60.00")
    assert funded.preconditions.check_purchase(ACCOUNT_ID, lead).ready

    funded.ledger.debit(ACCOUNT_ID, "50.00")

    with pytest.raises(PurchaseRejected) as exc_info:
        funded.executor.commit(ACCOUNT_ID, lead.lead_id)

    assert exc_info.value.reason is BlockReason.INSUFFICIENT_BALANCE
    assert funded.ledger.audit(ACCOUNT_ID) == Decimal("50.00")


def test_commit_rechecks_lead_sold_to_another_account(funded) -> None:
    funded.add_account(OTHER_ACCOUNT_ID, balance="50.00")
    lead = funded.add_lead("20.00")
    assert funded.preconditions.check_purchase(ACCOUNT_ID, lead).ready

    funded.executor.purchase(OTHER_ACCOUNT_ID, lead.lead_id)

    with pytest.raises(PurchaseRejected) as exc_info:
        funded.executor.commit(ACCOUNT_ID, lead.lead_id)

    assert exc_info.value.reason is BlockReason.ALREADY_OWNED
    assert funded.ledger.balance(ACCOUNT_ID) == Decimal("100.00")


def _race(count, fn):
    barrier = threading.Barrier(count)

    def run(arg):
        barrier.wait()
        try:
            return fn(arg)
        except PurchaseRejected as e:
            return e

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(run, range(count)))


def test_concurrent_purchases_never_overdraw(market) -> None:
    market.add_account(ACCOUNT_ID, balance="30.00")
    leads = [market.add_lead("20.00"), market.add_lead("20.00")]

    outcomes = _race(2, lambda i: market.executor.purchase(ACCOUNT_ID, leads[i].lead_id))

    rejected = [o for o in outcomes if isinstance(o, PurchaseRejected)]
    assert len(rejected) == 1
    assert rejected[0].reason is BlockReason.INSUFFICIENT_BALANCE
    assert market.ledger.balance(ACCOUNT_ID) == Decimal("10.00")
    assert market.ledger.audit(ACCOUNT_ID) == Decimal("10.00")


def test_concurrent_purchase_of_same_lead_by_same_account(funded) -> None:
    lead = funded.add_lead("20.00")

    outcomes = _race(4, lambda _: funded.executor.purchase(ACCOUNT_ID, lead.lead_id))

    rejected = [o for o in outcomes if isinstance(o, PurchaseRejected)]
    assert len(rejected) == 3
    assert {r.reason for r in rejected} == {BlockReason.ALREADY_OWNED}
    assert funded.ledger.balance(ACCOUNT_ID) == Decimal("80.00")
    assert funded.store.count_purchases_for_lead(lead.lead_id) == 1


def test_concurrent_purchase_of_same_lead_by_two_accounts(funded) -> None:
    funded.add_account(OTHER_ACCOUNT_ID, balance="100.00")
    funded.store.save_billing_profile(complete_billing(OTHER_ACCOUNT_ID))
    lead = funded.add_lead("20.00")
    buyers = [ACCOUNT_ID, OTHER_ACCOUNT_ID]

    outcomes = _race(2, lambda i: funded.executor.purchase(buyers[i], lead.lead_id))

    assert sum(isinstance(o, PurchaseRejected) for o in outcomes) == 1
    assert funded.store.count_purchases_for_lead(lead.lead_id) == 1
    total = funded.ledger.balance(ACCOUNT_ID) + funded.ledger.balance(OTHER_ACCOUNT_ID)
    assert total == Decimal("180.00")


def test_concurrent_purchase_with_exact_balance(market) -> None:
    market.add_account(ACCOUNT_ID, balance="30.00")
    lead = market.add_lead("30.00")

    outcomes = _race(2, lambda _: market.executor.purchase(ACCOUNT_ID, lead.lead_id))

    rejected = [o for o in outcomes if isinstance(o, PurchaseRejected)]
    assert len(rejected) == 1
    assert rejected[0].reason in (BlockReason.ALREADY_OWNED, BlockReason.INSUFFICIENT_BALANCE)
    assert market.ledger.balance(ACCOUNT_ID) == Decimal("0.00")
    purchases = [t for t in market.store.list_transactions(ACCOUNT_ID) if t.type is TransactionType.PURCHASE]
    assert len(purchases) == 1
    assert market.store.count_purchases_for_lead(lead.lead_id) == 1
