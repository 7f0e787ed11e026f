#!/usr/bin/env python3
"""
Ledger Audit Script

Replays every account's transaction log and checks that it reproduces the
stored balance with a consistent running balance_after.

Usage:
    python verify_ledger.py
    python verify_ledger.py --account-id 123e4567-e89b-12d3-a456-426614174002

Exit code is 1 if any account fails the audit.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from uuid import UUID

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import get_settings
from domain.errors import LedgerInvariantViolation
from services.container import build_store
from services.ledger_service import LedgerService


def audit_accounts(ledger: LedgerService, account_ids) -> dict:
    failures = {}
    for account_id in account_ids:
        try:
            balance = ledger.audit(account_id)
            print(f"OK    {account_id}  balance=${balance:.2f}")
        except LedgerInvariantViolation as e:
            print(f"FAIL  {account_id}  {e}")
            failures[account_id] = str(e)
    return failures


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(description="Audit account balances against their ledgers")
    parser.add_argument("--account-id", type=UUID, action="append", help="Audit only this account (repeatable)")
    args = parser.parse_args()

    try:
        store = build_store(get_settings())
        account_ids = args.account_id or store.list_account_ids()
        failures = audit_accounts(LedgerService(store), account_ids)

        print("=" * 60)
        print(f"Accounts audited: {len(account_ids)}")
        print(f"Failures:         {len(failures)}")
        print("=" * 60)
        return 1 if failures else 0

    except KeyboardInterrupt:
        print("\n\nAudit interrupted by user")
        return 130

    except Exception as e:
        print(f"\nFATAL ERROR: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
