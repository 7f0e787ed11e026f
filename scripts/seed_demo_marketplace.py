#!/usr/bin/env python3
"""
Demo Marketplace Seeding Script

Creates the demo vendor account used by the frontend, gives it a complete
billing profile and an opening deposit, and lists a batch of sample leads.

Usage:
    python seed_demo_marketplace.py
    python seed_demo_marketplace.py --leads 50 --deposit 250.00
    python seed_demo_marketplace.py --dry-run

Requires STORE_BACKEND=supabase (with SUPABASE_URL and SUPABASE_KEY) to
persist anything; against the memory backend the data is discarded on exit.
"""

from __future__ import annotations

import argparse
import random
import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path
from uuid import UUID, uuid4

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import get_settings
from domain.account import Account, BillingProfile
from domain.lead import Lead
from domain.time import utc_now
from services.container import MarketplaceContainer

DEMO_ACCOUNT_ID = UUID("123e4567-e89b-12d3-a456-426614174002")

CITIES = [
    ("Austin", "TX"),
    ("Dallas", "TX"),
    ("Napa", "CA"),
    ("San Diego", "CA"),
    ("Charleston", "SC"),
    ("Savannah", "GA"),
    ("Asheville", "NC"),
    ("Denver", "CO"),
]
SERVICES = ["Photography", "Videography", "DJ", "Florist", "Catering", "Planning", "Hair & Makeup"]
PRICES = [Decimal("15.00"), Decimal("20.00"), Decimal("25.00"), Decimal("35.00")]


def build_demo_lead(rng: random.Random, now) -> Lead:
    city, state = rng.choice(CITIES)
    first = rng.choice(["Ava", "Mia", "Noah", "Liam", "Emma", "Zoe"])
    last = rng.choice(["Reyes", "Nguyen", "Patel", "Smith", "Garcia"])
    return Lead(
        lead_id=uuid4(),
        price=rng.choice(PRICES),
        created_at=now - timedelta(hours=rng.randint(0, 24 * 30)),
        wedding_date=date.today() + timedelta(days=rng.randint(30, 540)) if rng.random() > 0.1 else None,
        location=f"{city}, {state}",
        city=city,
        state=state,
        services_needed=tuple(rng.sample(SERVICES, rng.randint(1, 3))),
        description=f"{rng.randint(40, 250)} guests, {rng.choice(['outdoor', 'ballroom', 'barn', 'beach'])} venue",
        last_client_response_at=now - timedelta(days=rng.randint(0, 30)) if rng.random() > 0.5 else None,
        masked_info={"name": f"{first[0]}*** {last[0]}***", "email": "h***@***.com"},
        full_info={
            "name": f"{first} {last}",
            "email": f"{first.lower()}.{last.lower()}@example.com",
            "phone": f"+1 555 {rng.randint(100, 999)} {rng.randint(1000, 9999)}",
        },
    )


def seed(marketplace: MarketplaceContainer, lead_count: int, deposit: Decimal, seed_value: int, dry_run: bool) -> dict:
    store = marketplace.store
    rng = random.Random(seed_value)
    now = utc_now()
    stats = {"account_created": 0, "deposited": Decimal("0.00"), "leads_created": 0}

    if store.get_account(DEMO_ACCOUNT_ID) is None:
        print(f"Creating demo account {DEMO_ACCOUNT_ID}")
        if not dry_run:
            store.create_account(
                Account(
                    account_id=DEMO_ACCOUNT_ID,
                    business_name="Demo Photography Co",
                    email="demo@example.com",
                    vendor_type="photographer",
                    created_at=now,
                )
            )
            store.save_billing_profile(
                BillingProfile(
                    account_id=DEMO_ACCOUNT_ID,
                    first_name="Demo",
                    last_name="Vendor",
                    address_line1="100 Congress Ave",
                    city="Austin",
                    state="TX",
                    zip="78701",
                )
            )
        stats["account_created"] = 1
    else:
        print(f"Demo account already exists: {DEMO_ACCOUNT_ID}")

    if deposit > 0:
        print(f"Depositing ${deposit:.2f}")
        if not dry_run:
            marketplace.ledger.credit(DEMO_ACCOUNT_ID, deposit, description="Demo deposit")
        stats["deposited"] = deposit

    for _ in range(lead_count):
        lead = build_demo_lead(rng, now)
        if not dry_run:
            store.add_lead(lead)
        stats["leads_created"] += 1

    return stats


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(description="Seed the demo vendor account and sample leads")
    parser.add_argument("--leads", type=int, default=25, help="Number of sample leads to list (default: 25)")
    parser.add_argument("--deposit", type=Decimal, default=Decimal("100.00"), help="Opening deposit (default: 100.00)")
    parser.add_argument("--seed", type=int, default=7, help="Random seed for reproducible leads")
    parser.add_argument("--dry-run", action="store_true", help="Print what would be created without writing")
    args = parser.parse_args()

    try:
        settings = get_settings()
        if settings.store_backend == "memory":
            print("WARNING: STORE_BACKEND=memory, seeded data will not persist")

        stats = seed(MarketplaceContainer.build(settings), args.leads, args.deposit, args.seed, args.dry_run)

        print("=" * 60)
        print(f"Accounts created: {stats['account_created']}")
        print(f"Deposited:        ${stats['deposited']:.2f}")
        print(f"Leads created:    {stats['leads_created']}")
        if args.dry_run:
            print("(dry run, nothing written)")
        print("=" * 60)
        return 0

    except KeyboardInterrupt:
        print("\n\nSeeding interrupted by user")
        return 130

    except Exception as e:
        print(f"\nFATAL ERROR: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
