"""
Persistence contract for the purchase and ledger core.

A MarketplaceStore exposes committed state for reads and a unit of work for
writes. Everything staged on a UnitOfWork (ledger entries, balance, lead
status, purchase and feedback records) becomes visible together when the unit
commits, or not at all.

Backends:
- repositories.memory_store.InMemoryStore: per-account and per-lead locks.
- repositories.supabase_store.SupabaseStore: optimistic commit through the
  commit_ledger_batch PostgreSQL function.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, TypeVar
from uuid import UUID

from domain.account import Account, BillingProfile
from domain.errors import CommitConflict, LedgerInvariantViolation
from domain.lead import Lead, LeadStatus
from domain.ledger import LedgerTransaction
from domain.money import ZERO
from domain.purchase import Favorite, LeadFeedback, PurchaseRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UnitOfWork(ABC):
    """
    Staged writes for a single account, bound to one transaction boundary.

    ``account`` always reflects the staged balance, so a second debit inside
    the same unit sees the first.
    """

    def __init__(self, account: Account, billing_profile: Optional[BillingProfile]):
        self.account = account
        self.billing_profile = billing_profile
        self.opening_balance = account.balance
        self.transactions: List[LedgerTransaction] = []
        self.purchases: List[PurchaseRecord] = []
        self.feedback: List[LeadFeedback] = []
        self.lead_updates: Dict[UUID, Lead] = {}
        self.loaded_leads: Dict[UUID, Lead] = {}

    # -- reads ---------------------------------------------------------

    @abstractmethod
    def _read_lead(self, lead_id: UUID) -> Optional[Lead]:
        ...

    @abstractmethod
    def _read_has_purchase(self, lead_id: UUID) -> bool:
        ...

    @abstractmethod
    def _read_has_feedback(self, lead_id: UUID) -> bool:
        ...

    def get_lead(self, lead_id: UUID) -> Optional[Lead]:
        if lead_id in self.lead_updates:
            return self.lead_updates[lead_id]
        if lead_id not in self.loaded_leads:
            lead = self._read_lead(lead_id)
            if lead is None:
                return None
            self.loaded_leads[lead_id] = lead
        return self.loaded_leads[lead_id]

    def has_purchase(self, lead_id: UUID) -> bool:
        if any(p.lead_id == lead_id for p in self.purchases):
            return True
        return self._read_has_purchase(lead_id)

    def has_feedback(self, lead_id: UUID) -> bool:
        if any(f.lead_id == lead_id for f in self.feedback):
            return True
        return self._read_has_feedback(lead_id)

    # -- staged writes -------------------------------------------------

    def post(self, txn: LedgerTransaction) -> None:
        """Stage a ledger entry and the balance it produces."""

        if txn.account_id != self.account.account_id:
            raise LedgerInvariantViolation(
                f"Transaction for {txn.account_id} posted to unit of work for {self.account.account_id}"
            )
        expected = self.account.balance + txn.amount
        if expected < ZERO or txn.balance_after != expected:
            raise LedgerInvariantViolation(
                f"Transaction {txn.transaction_id} balance_after={txn.balance_after} "
                f"does not follow balance {self.account.balance} + {txn.amount}"
            )
        self.transactions.append(txn)
        self.account = self.account.with_balance(txn.balance_after)

    def save_lead(self, lead: Lead) -> None:
        if self.get_lead(lead.lead_id) is None:
            raise LedgerInvariantViolation(f"Cannot update unknown lead {lead.lead_id}")
        self.lead_updates[lead.lead_id] = lead

    def add_purchase(self, record: PurchaseRecord) -> None:
        if record.account_id != self.account.account_id:
            raise LedgerInvariantViolation("Purchase record account does not match unit of work")
        if self.has_purchase(record.lead_id):
            raise LedgerInvariantViolation(
                f"Duplicate purchase record for lead {record.lead_id} and account {record.account_id}"
            )
        self.purchases.append(record)

    def add_feedback(self, feedback: LeadFeedback) -> None:
        if self.has_feedback(feedback.lead_id):
            raise LedgerInvariantViolation(f"Duplicate feedback for lead {feedback.lead_id}")
        self.feedback.append(feedback)

    @property
    def has_changes(self) -> bool:
        return bool(self.transactions or self.purchases or self.feedback or self.lead_updates)

    def expected_lead_status(self, lead_id: UUID) -> LeadStatus:
        return self.loaded_leads[lead_id].status


class MarketplaceStore(ABC):
    """Committed-state reads plus the unit-of-work factory."""

    @abstractmethod
    def unit_of_work(
        self, account_id: UUID, lead_ids: Iterable[UUID] = ()
    ) -> AbstractContextManager[UnitOfWork]:
        """
        Open a unit of work for ``account_id``.

        Raises AccountNotFound if the account does not exist. ``lead_ids``
        names the leads whose status the unit may change.
        """

    def run_atomic(
        self,
        account_id: UUID,
        work: Callable[[UnitOfWork], T],
        lead_ids: Iterable[UUID] = (),
        attempts: int = 1,
    ) -> T:
        """
        Run ``work`` inside a fresh unit of work and commit it.

        On CommitConflict the whole unit is re-run against newly read state, so
        every precondition inside ``work`` is re-validated.
        """

        lead_ids = tuple(lead_ids)
        for attempt in range(1, attempts + 1):
            try:
                with self.unit_of_work(account_id, lead_ids) as uow:
                    result = work(uow)
                return result
            except CommitConflict:
                if attempt >= attempts:
                    raise
                logger.info(
                    "Ledger commit conflict, retrying",
                    extra={"account_id": str(account_id), "attempt": attempt},
                )
        raise AssertionError("unreachable")

    # -- accounts and billing -----------------------------------------

    @abstractmethod
    def get_account(self, account_id: UUID) -> Optional[Account]:
        ...

    @abstractmethod
    def list_account_ids(self) -> List[UUID]:
        ...

    @abstractmethod
    def create_account(self, account: Account) -> Account:
        """Register a new account. Accounts start at balance 0; money enters through the ledger."""

    @abstractmethod
    def get_billing_profile(self, account_id: UUID) -> Optional[BillingProfile]:
        ...

    @abstractmethod
    def save_billing_profile(self, profile: BillingProfile) -> None:
        ...

    # -- catalog --------------------------------------------------------

    @abstractmethod
    def get_lead(self, lead_id: UUID) -> Optional[Lead]:
        ...

    def get_leads(self, lead_ids: Sequence[UUID]) -> Dict[UUID, Lead]:
        found: Dict[UUID, Lead] = {}
        for lead_id in lead_ids:
            lead = self.get_lead(lead_id)
            if lead is not None:
                found[lead_id] = lead
        return found

    @abstractmethod
    def list_leads(self, *, status: Optional[LeadStatus] = None, active_only: bool = True) -> List[Lead]:
        """Leads ordered by created_at descending."""

    @abstractmethod
    def add_lead(self, lead: Lead) -> None:
        """Catalog ingestion entry point."""

    # -- purchases ------------------------------------------------------

    @abstractmethod
    def list_purchases(self, account_id: UUID) -> List[PurchaseRecord]:
        """Purchases of an account, newest first."""

    def get_purchase(self, account_id: UUID, lead_id: UUID) -> Optional[PurchaseRecord]:
        for record in self.list_purchases(account_id):
            if record.lead_id == lead_id:
                return record
        return None

    @abstractmethod
    def count_purchases_for_lead(self, lead_id: UUID) -> int:
        ...

    # -- ledger ---------------------------------------------------------

    @abstractmethod
    def list_transactions(
        self,
        account_id: UUID,
        *,
        newest_first: bool = False,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[LedgerTransaction]:
        ...

    @abstractmethod
    def count_transactions(self, account_id: UUID) -> int:
        ...

    # -- favorites ------------------------------------------------------

    @abstractmethod
    def add_favorite(self, account_id: UUID, lead_id: UUID, created_at: datetime) -> bool:
        """Insert if absent. Returns True when a row was created."""

    @abstractmethod
    def remove_favorite(self, account_id: UUID, lead_id: UUID) -> bool:
        """Delete if present. Returns True when a row was removed."""

    @abstractmethod
    def list_favorites(self, account_id: UUID) -> List[Favorite]:
        """Favorites of an account, newest first."""

    def favorite_lead_ids(self, account_id: UUID) -> Set[UUID]:
        return {f.lead_id for f in self.list_favorites(account_id)}


__all__ = ["MarketplaceStore", "UnitOfWork"]
