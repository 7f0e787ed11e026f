"""
Pytest configuration and shared fixtures.

Adds the project root to the Python path so tests can import domain,
repositories, services and api, and wires an in-memory marketplace with a
fixed clock.
"""

import sys
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from uuid import UUID, uuid4

import pytest

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.account import Account, BillingProfile  # noqa: E402
from domain.lead import Lead  # noqa: E402
from repositories.memory_store import InMemoryStore  # noqa: E402
from services.bulk_purchase_service import BulkPurchaseOrchestrator  # noqa: E402
from services.catalog_service import CatalogService  # noqa: E402
from services.feedback_service import FeedbackService  # noqa: E402
from services.ledger_service import LedgerService  # noqa: E402
from services.precondition_service import PreconditionChain  # noqa: E402
from services.purchase_service import PurchaseExecutor  # noqa: E402

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
ACCOUNT_ID = UUID("00000000-0000-0000-0000-00000000a001")
OTHER_ACCOUNT_ID = UUID("00000000-0000-0000-0000-00000000a002")


def fixed_clock() -> datetime:
    return NOW


def complete_billing(account_id: UUID) -> BillingProfile:
    return BillingProfile(
        account_id=account_id,
        first_name="Ava",
        last_name="Reyes",
        address_line1="12 Main St",
        city="Austin",
        state="TX",
        zip="78701",
    )


def make_lead(price="20.00", **overrides) -> Lead:
    fields = dict(
        lead_id=uuid4(),
        price=Decimal(str(price)),
        created_at=NOW - timedelta(days=10),
        wedding_date=date(2026, 9, 12),
        location="Austin, TX",
        city="Austin",
        state="TX",
        services_needed=("Photography",),
        description="Garden ceremony",
        masked_info={"name": "A*** R***"},
        full_info={"name": "Ava Reyes", "phone": "+1 512 555 0100"},
    )
    fields.update(overrides)
    return Lead(**fields)


class Marketplace:
    """In-memory store plus services sharing one fixed clock."""

    def __init__(self, strict_affordability: bool = False):
        self.store = InMemoryStore()
        self.ledger = LedgerService(self.store, clock=fixed_clock)
        self.preconditions = PreconditionChain(self.store)
        self.executor = PurchaseExecutor(self.store, self.ledger, self.preconditions, clock=fixed_clock)
        self.bulk = BulkPurchaseOrchestrator(
            self.store, self.executor, self.preconditions, strict_affordability=strict_affordability
        )
        self.catalog = CatalogService(self.store, clock=fixed_clock)
        self.feedback = FeedbackService(self.store, self.ledger, clock=fixed_clock)

    def add_account(self, account_id: UUID = ACCOUNT_ID, balance="0.00", billing: bool = True) -> UUID:
        self.store.create_account(Account(account_id=account_id, created_at=NOW))
        if billing:
            self.store.save_billing_profile(complete_billing(account_id))
        if Decimal(str(balance)) > 0:
            self.ledger.credit(account_id, balance, description="Initial deposit")
        return account_id

    def add_lead(self, price="20.00", **overrides) -> Lead:
        lead = make_lead(price, **overrides)
        self.store.add_lead(lead)
        return lead


@pytest.fixture
def market() -> Marketplace:
    return Marketplace()


@pytest.fixture
def funded(market: Marketplace) -> Marketplace:
    """Marketplace with ACCOUNT_ID holding $100.00 and a complete billing profile."""

    market.add_account(ACCOUNT_ID, balance="100.00")
    return market
