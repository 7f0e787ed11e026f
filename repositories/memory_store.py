"""
In-process MarketplaceStore.

Used for local development, demos and the test suite. Concurrency model:
- one lock per account serializes every unit of work for that account;
- one lock per lead serializes status changes of that lead across accounts;
- a short state lock makes each commit visible to readers in one step.

Lock order is always account first, then leads in sorted id order.
"""

from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional, Tuple
from uuid import UUID

from domain.account import Account, BillingProfile
from domain.errors import AccountNotFound, StoreError
from domain.lead import Lead, LeadStatus
from domain.ledger import LedgerTransaction
from domain.money import ZERO
from domain.purchase import Favorite, LeadFeedback, PurchaseRecord
from repositories.store import MarketplaceStore, UnitOfWork


class _InMemoryUnitOfWork(UnitOfWork):
    def __init__(self, store: "InMemoryStore", account: Account, billing: Optional[BillingProfile]):
        super().__init__(account, billing)
        self._store = store

    def _read_lead(self, lead_id: UUID) -> Optional[Lead]:
        return self._store.get_lead(lead_id)

    def _read_has_purchase(self, lead_id: UUID) -> bool:
        return self._store.get_purchase(self.account.account_id, lead_id) is not None

    def _read_has_feedback(self, lead_id: UUID) -> bool:
        return (self.account.account_id, lead_id) in self._store._feedback


class InMemoryStore(MarketplaceStore):
    def __init__(self) -> None:
        self._state_lock = threading.RLock()
        self._registry_lock = threading.Lock()
        self._account_locks: Dict[UUID, threading.Lock] = {}
        self._lead_locks: Dict[UUID, threading.Lock] = {}

        self._accounts: Dict[UUID, Account] = {}
        self._billing: Dict[UUID, BillingProfile] = {}
        self._leads: Dict[UUID, Lead] = {}
        self._transactions: Dict[UUID, List[LedgerTransaction]] = {}
        self._purchases: Dict[Tuple[UUID, UUID], PurchaseRecord] = {}
        self._favorites: Dict[Tuple[UUID, UUID], Favorite] = {}
        self._feedback: Dict[Tuple[UUID, UUID], LeadFeedback] = {}

    def _lock_for(self, registry: Dict[UUID, threading.Lock], key: UUID) -> threading.Lock:
        with self._registry_lock:
            lock = registry.get(key)
            if lock is None:
                lock = registry[key] = threading.Lock()
            return lock

    @contextmanager
    def unit_of_work(self, account_id: UUID, lead_ids: Iterable[UUID] = ()) -> Iterator[UnitOfWork]:
        with ExitStack() as locks:
            locks.enter_context(self._lock_for(self._account_locks, account_id))
            for lead_id in sorted(set(lead_ids), key=str):
                locks.enter_context(self._lock_for(self._lead_locks, lead_id))

            with self._state_lock:
                account = self._accounts.get(account_id)
                billing = self._billing.get(account_id)
            if account is None:
                raise AccountNotFound(account_id)

            uow = _InMemoryUnitOfWork(self, account, billing)
            yield uow
            if uow.has_changes:
                self._commit(uow)

    def _commit(self, uow: UnitOfWork) -> None:
        account_id = uow.account.account_id
        with self._state_lock:
            if self._accounts[account_id].balance != uow.opening_balance:
                # Only possible if something wrote outside the account lock.
                raise StoreError(f"Balance of {account_id} changed outside its unit of work")
            for lead_id, lead in uow.lead_updates.items():
                if self._leads[lead_id].status is not uow.expected_lead_status(lead_id):
                    raise StoreError(f"Lead {lead_id} changed outside its unit of work")

            self._transactions.setdefault(account_id, []).extend(uow.transactions)
            self._accounts[account_id] = uow.account
            self._leads.update(uow.lead_updates)
            for record in uow.purchases:
                self._purchases[(record.account_id, record.lead_id)] = record
            for feedback in uow.feedback:
                self._feedback[(feedback.account_id, feedback.lead_id)] = feedback

    # -- accounts and billing -----------------------------------------

    def get_account(self, account_id: UUID) -> Optional[Account]:
        with self._state_lock:
            return self._accounts.get(account_id)

    def list_account_ids(self) -> List[UUID]:
        with self._state_lock:
            return list(self._accounts)

    def create_account(self, account: Account) -> Account:
        if account.balance != ZERO:
            raise StoreError("Accounts must be created with a zero balance")
        with self._state_lock:
            if account.account_id in self._accounts:
                raise StoreError(f"Account already exists: {account.account_id}")
            self._accounts[account.account_id] = account
        return account

    def get_billing_profile(self, account_id: UUID) -> Optional[BillingProfile]:
        with self._state_lock:
            return self._billing.get(account_id)

    def save_billing_profile(self, profile: BillingProfile) -> None:
        with self._state_lock:
            self._billing[profile.account_id] = profile

    # -- catalog --------------------------------------------------------

    def get_lead(self, lead_id: UUID) -> Optional[Lead]:
        with self._state_lock:
            return self._leads.get(lead_id)

    def list_leads(self, *, status: Optional[LeadStatus] = None, active_only: bool = True) -> List[Lead]:
        with self._state_lock:
            leads = list(self._leads.values())
        if status is not None:
            leads = [lead for lead in leads if lead.status is status]
        if active_only:
            leads = [lead for lead in leads if lead.active]
        return sorted(leads, key=lambda lead: lead.created_at, reverse=True)

    def add_lead(self, lead: Lead) -> None:
        with self._state_lock:
            if lead.lead_id in self._leads:
                raise StoreError(f"Lead already exists: {lead.lead_id}")
            self._leads[lead.lead_id] = lead

    # -- purchases ------------------------------------------------------

    def list_purchases(self, account_id: UUID) -> List[PurchaseRecord]:
        with self._state_lock:
            records = [p for (owner, _), p in self._purchases.items() if owner == account_id]
        return sorted(records, key=lambda p: p.purchased_at, reverse=True)

    def get_purchase(self, account_id: UUID, lead_id: UUID) -> Optional[PurchaseRecord]:
        with self._state_lock:
            return self._purchases.get((account_id, lead_id))

    def count_purchases_for_lead(self, lead_id: UUID) -> int:
        with self._state_lock:
            return sum(1 for (_, owned) in self._purchases if owned == lead_id)

    # -- ledger ---------------------------------------------------------

    def list_transactions(
        self,
        account_id: UUID,
        *,
        newest_first: bool = False,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[LedgerTransaction]:
        with self._state_lock:
            txns = list(self._transactions.get(account_id, ()))
        if newest_first:
            txns.reverse()
        end = None if limit is None else offset + limit
        return txns[offset:end]

    def count_transactions(self, account_id: UUID) -> int:
        with self._state_lock:
            return len(self._transactions.get(account_id, ()))

    # -- favorites ------------------------------------------------------

    def add_favorite(self, account_id: UUID, lead_id: UUID, created_at: datetime) -> bool:
        with self._state_lock:
            key = (account_id, lead_id)
            if key in self._favorites:
                return False
            self._favorites[key] = Favorite(account_id=account_id, lead_id=lead_id, created_at=created_at)
            return True

    def remove_favorite(self, account_id: UUID, lead_id: UUID) -> bool:
        with self._state_lock:
            return self._favorites.pop((account_id, lead_id), None) is not None

    def list_favorites(self, account_id: UUID) -> List[Favorite]:
        with self._state_lock:
            favorites = [f for (owner, _), f in self._favorites.items() if owner == account_id]
        return sorted(favorites, key=lambda f: f.created_at, reverse=True)


__all__ = ["InMemoryStore"]
