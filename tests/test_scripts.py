"""
Tests for the operational scripts in `scripts/`.
"""

from __future__ import annotations

from decimal import Decimal

from conftest import ACCOUNT_ID
from config import Settings
from domain.money import to_money
from scripts.seed_demo_marketplace import DEMO_ACCOUNT_ID, seed
from scripts.verify_ledger import audit_accounts
from services.container import MarketplaceContainer


def test_seed_creates_purchasable_demo_data() -> None:
    marketplace = MarketplaceContainer.build(Settings())

    stats = seed(marketplace, lead_count=5, deposit=Decimal("50.00"), seed_value=1, dry_run=False)

    assert stats["leads_created"] == 5
    assert marketplace.ledger.balance(DEMO_ACCOUNT_ID) == Decimal("50.00")
    leads = marketplace.store.list_leads()
    assert len(leads) == 5
    cheapest = min(leads, key=lambda lead: lead.price)
    assert marketplace.executor.purchase(DEMO_ACCOUNT_ID, cheapest.lead_id).balance_after == (
        to_money("50.00") - cheapest.price
    )


def test_seed_dry_run_writes_nothing() -> None:
    marketplace = MarketplaceContainer.build(Settings())

    seed(marketplace, lead_count=3, deposit=Decimal("10.00"), seed_value=1, dry_run=True)

    assert marketplace.store.get_account(DEMO_ACCOUNT_ID) is None
    assert marketplace.store.list_leads() == []


def test_audit_reports_drifted_balance(funded) -> None:
    assert audit_accounts(funded.ledger, [ACCOUNT_ID]) == {}

    # Simulate a balance written outside the ledger.
    account = funded.store.get_account(ACCOUNT_ID)
    funded.store._accounts[ACCOUNT_ID] = account.with_balance(Decimal("999.00"))

    assert list(audit_accounts(funded.ledger, [ACCOUNT_ID])) == [ACCOUNT_ID]
