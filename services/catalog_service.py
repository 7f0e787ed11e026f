"""
Catalog service: marketplace listing, lead details and favorites.

Listing is filtered server-side: only AVAILABLE, active leads that the
requesting account has not purchased are returned, whatever other filters
are applied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from uuid import UUID

from domain.errors import LeadNotFound
from domain.lead import Lead, LeadStatus
from domain.purchase import PurchaseRecord
from domain.tags import calculate_dynamic_tags
from domain.time import utc_now
from repositories.store import MarketplaceStore
from services.catalog_query import (
    SortKey,
    compute_facets,
    filter_leads,
    normalize_states,
    paginate,
    parse_csv,
    sort_leads,
)

logger = logging.getLogger(__name__)

MAX_CATALOG_LIMIT = 100


@dataclass(frozen=True, slots=True)
class CatalogQuery:
    search: str = ""
    states: Tuple[str, ...] = ()
    services: Tuple[str, ...] = ()
    sort: SortKey = SortKey.NEWEST
    favorites_only: bool = False
    include_facets: bool = False
    page: int = 1
    limit: int = 20

    def normalized(self) -> "CatalogQuery":
        return CatalogQuery(
            search=self.search.strip(),
            states=tuple(normalize_states(self.states)),
            services=tuple(parse_csv(self.services)),
            sort=SortKey(self.sort),
            favorites_only=self.favorites_only,
            include_facets=self.include_facets,
            page=max(1, self.page),
            limit=max(1, min(MAX_CATALOG_LIMIT, self.limit)),
        )


@dataclass(frozen=True, slots=True)
class CatalogItem:
    lead: Lead
    is_favorited: bool
    tags: List[str]


@dataclass(frozen=True, slots=True)
class CatalogPage:
    items: List[CatalogItem]
    page: int
    limit: int
    total: int
    total_pages: int
    facets: Optional[Dict[str, List[Tuple[str, int]]]] = None


@dataclass(frozen=True, slots=True)
class LeadDetail:
    """Single lead as seen by one account; contact info only after purchase."""

    lead: Lead
    purchased: bool
    purchased_at: Optional[datetime]
    is_favorited: bool
    tags: List[str]
    info: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class FavoriteItem:
    lead: Lead
    favorited_at: datetime
    tags: List[str]


@dataclass(frozen=True, slots=True)
class PurchasedLead:
    purchase: PurchaseRecord
    lead: Lead
    tags: List[str]


class CatalogService:
    def __init__(self, store: MarketplaceStore, *, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    def _require_lead(self, lead_id: UUID) -> Lead:
        lead = self.store.get_lead(lead_id)
        if lead is None:
            raise LeadNotFound(lead_id)
        return lead

    def list_catalog(self, account_id: UUID, query: CatalogQuery = CatalogQuery()) -> CatalogPage:
        """
        Paged, filtered, sorted list of purchasable leads for ``account_id``.

        Process:
        1. AVAILABLE and active leads
        2. Drop leads this account already purchased
        3. Optional favorites-only restriction
        4. Text, state and service filters
        5. Facets over the filtered set, then sort and paginate
        """

        query = query.normalized()
        owned = {record.lead_id for record in self.store.list_purchases(account_id)}
        favorites = self.store.favorite_lead_ids(account_id)

        leads = [
            lead
            for lead in self.store.list_leads(status=LeadStatus.AVAILABLE, active_only=True)
            if lead.lead_id not in owned
        ]
        if query.favorites_only:
            leads = [lead for lead in leads if lead.lead_id in favorites]
        leads = filter_leads(leads, search=query.search, states=query.states, services=query.services)

        facets = compute_facets(leads) if query.include_facets else None
        page_leads, total_pages = paginate(sort_leads(leads, query.sort), query.page, query.limit)

        now = self.clock()
        items = [
            CatalogItem(
                lead=lead,
                is_favorited=lead.lead_id in favorites,
                tags=calculate_dynamic_tags(lead, now),
            )
            for lead in page_leads
        ]
        return CatalogPage(
            items=items,
            page=query.page,
            limit=query.limit,
            total=len(leads),
            total_pages=total_pages,
            facets=facets,
        )

    def get_lead_detail(self, account_id: UUID, lead_id: UUID) -> LeadDetail:
        lead = self._require_lead(lead_id)
        purchase = self.store.get_purchase(account_id, lead_id)
        purchased_at = purchase.purchased_at if purchase else None
        return LeadDetail(
            lead=lead,
            purchased=purchase is not None,
            purchased_at=purchased_at,
            is_favorited=lead_id in self.store.favorite_lead_ids(account_id),
            tags=calculate_dynamic_tags(lead, self.clock(), purchased_at),
            info=lead.full_info if purchase else lead.masked_info,
        )

    # -- favorites ------------------------------------------------------

    def add_favorite(self, account_id: UUID, lead_id: UUID) -> bool:
        """Idempotent. Returns True (favorited) whether or not it already was."""

        self._require_lead(lead_id)
        if self.store.add_favorite(account_id, lead_id, self.clock()):
            logger.info("Lead added to favorites", extra={"account_id": str(account_id), "lead_id": str(lead_id)})
        return True

    def remove_favorite(self, account_id: UUID, lead_id: UUID) -> bool:
        """Idempotent. Returns False (not favorited) whether or not it was."""

        self._require_lead(lead_id)
        if self.store.remove_favorite(account_id, lead_id):
            logger.info("Lead removed from favorites", extra={"account_id": str(account_id), "lead_id": str(lead_id)})
        return False

    def toggle_favorite(self, account_id: UUID, lead_id: UUID) -> bool:
        """Flip the favorite state; returns the new state."""

        self._require_lead(lead_id)
        if lead_id in self.store.favorite_lead_ids(account_id):
            return self.remove_favorite(account_id, lead_id)
        return self.add_favorite(account_id, lead_id)

    def list_favorites(self, account_id: UUID) -> List[FavoriteItem]:
        favorites = self.store.list_favorites(account_id)
        leads = self.store.get_leads([f.lead_id for f in favorites])
        now = self.clock()
        return [
            FavoriteItem(lead=leads[f.lead_id], favorited_at=f.created_at, tags=calculate_dynamic_tags(leads[f.lead_id], now))
            for f in favorites
            if f.lead_id in leads
        ]

    def list_purchased_leads(self, account_id: UUID) -> List[PurchasedLead]:
        purchases = self.store.list_purchases(account_id)
        leads = self.store.get_leads([p.lead_id for p in purchases])
        now = self.clock()
        return [
            PurchasedLead(
                purchase=p,
                lead=leads[p.lead_id],
                tags=calculate_dynamic_tags(leads[p.lead_id], now, p.purchased_at),
            )
            for p in purchases
            if p.lead_id in leads
        ]


__all__ = [
    "CatalogItem",
    "CatalogPage",
    "CatalogQuery",
    "CatalogService",
    "FavoriteItem",
    "LeadDetail",
    "PurchasedLead",
]
