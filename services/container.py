"""Wires the store and services from Settings."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from config import Settings, get_settings
from repositories.memory_store import InMemoryStore
from repositories.store import MarketplaceStore
from services.bulk_purchase_service import BulkPurchaseOrchestrator
from services.catalog_service import CatalogService
from services.feedback_service import FeedbackService
from services.ledger_service import LedgerService
from services.precondition_service import PreconditionChain
from services.purchase_service import PurchaseExecutor


def build_store(settings: Settings) -> MarketplaceStore:
    if settings.store_backend == "supabase":
        from repositories.supabase_store import SupabaseStore

        return SupabaseStore()
    return InMemoryStore()


@dataclass(slots=True)
class MarketplaceContainer:
    settings: Settings
    store: MarketplaceStore
    ledger: LedgerService
    preconditions: PreconditionChain
    executor: PurchaseExecutor
    bulk: BulkPurchaseOrchestrator
    catalog: CatalogService
    feedback: FeedbackService

    @classmethod
    def build(cls, settings: Settings, store: Optional[MarketplaceStore] = None) -> "MarketplaceContainer":
        store = store if store is not None else build_store(settings)
        attempts = settings.ledger_commit_retries
        ledger = LedgerService(store, commit_attempts=attempts)
        preconditions = PreconditionChain(store)
        executor = PurchaseExecutor(store, ledger, preconditions, commit_attempts=attempts)
        return cls(
            settings=settings,
            store=store,
            ledger=ledger,
            preconditions=preconditions,
            executor=executor,
            bulk=BulkPurchaseOrchestrator(
                store, executor, preconditions, strict_affordability=settings.bulk_strict_affordability
            ),
            catalog=CatalogService(store),
            feedback=FeedbackService(store, ledger, reward=settings.feedback_reward, commit_attempts=attempts),
        )


@lru_cache()
def get_container() -> MarketplaceContainer:
    return MarketplaceContainer.build(get_settings())


__all__ = ["MarketplaceContainer", "build_store", "get_container"]
