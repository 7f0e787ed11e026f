"""
Client-side view projection of the marketplace.

Keeps filter/sort/page selections separate from server state (catalog page
and balance). Purchase and favorite events trigger a refetch of both but
never touch the selections. Changing a filter resets the page to 1; changing
the page does not.

Filter preferences can be persisted to a JSON file. That file is a
convenience only: the server stays authoritative for catalog and balance, and
an unreadable file just means defaults.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, replace
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple
from uuid import UUID

from domain.money import ZERO
from services.catalog_query import SortKey
from services.catalog_service import CatalogPage, CatalogQuery, CatalogService
from services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterState:
    search: str = ""
    states: Tuple[str, ...] = ()
    services: Tuple[str, ...] = ()
    sort: SortKey = SortKey.NEWEST
    favorites_only: bool = False
    page: int = 1

    def with_filters(self, **changes: Any) -> "FilterState":
        """Apply filter changes and go back to the first page."""

        if "page" in changes:
            raise ValueError("use with_page to change the page")
        for key in ("states", "services"):
            if key in changes:
                changes[key] = tuple(changes[key])
        if "sort" in changes:
            changes["sort"] = SortKey(changes["sort"])
        return replace(self, page=1, **changes)

    def with_page(self, page: int) -> "FilterState":
        return replace(self, page=max(1, page))

    def to_query(self, limit: int, include_facets: bool = False) -> CatalogQuery:
        return CatalogQuery(
            search=self.search,
            states=self.states,
            services=self.services,
            sort=self.sort,
            favorites_only=self.favorites_only,
            include_facets=include_facets,
            page=self.page,
            limit=limit,
        )


class FilterPreferenceStore:
    """Persists filter selections (not the page) as JSON."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> FilterState:
        if not self.path.exists():
            return FilterState()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return FilterState(
                search=str(raw.get("search", "")),
                states=tuple(raw.get("states", ())),
                services=tuple(raw.get("services", ())),
                sort=SortKey(raw.get("sort", SortKey.NEWEST.value)),
                favorites_only=bool(raw.get("favorites_only", False)),
            )
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Ignoring unreadable filter preferences", extra={"path": str(self.path), "error": str(e)})
            return FilterState()

    def save(self, state: FilterState) -> None:
        data: Dict[str, Any] = asdict(state)
        data.pop("page")
        data["sort"] = state.sort.value
        data["states"] = list(state.states)
        data["services"] = list(state.services)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")


@dataclass
class ViewProjection:
    """
    UI-facing state for one account.

    ``fetch_catalog`` and ``fetch_balance`` are the server calls; use
    ``for_services`` to wire them to in-process services.
    """

    fetch_catalog: Callable[[CatalogQuery], CatalogPage]
    fetch_balance: Callable[[], Decimal]
    preferences: Optional[FilterPreferenceStore] = None
    limit: int = 20
    state: FilterState = field(default_factory=FilterState)
    catalog: Optional[CatalogPage] = None
    balance: Decimal = ZERO

    def __post_init__(self) -> None:
        if self.preferences is not None:
            self.state = self.preferences.load()

    @classmethod
    def for_services(
        cls,
        account_id: UUID,
        catalog: CatalogService,
        ledger: LedgerService,
        **kwargs: Any,
    ) -> "ViewProjection":
        return cls(
            fetch_catalog=lambda query: catalog.list_catalog(account_id, query),
            fetch_balance=lambda: ledger.balance(account_id),
            **kwargs,
        )

    def refresh(self) -> None:
        self.catalog = self.fetch_catalog(self.state.to_query(self.limit))
        self.balance = self.fetch_balance()
        # A purchase can shrink the catalog below the current page.
        if self.catalog.total_pages and self.state.page > self.catalog.total_pages:
            self.state = self.state.with_page(self.catalog.total_pages)
            self.catalog = self.fetch_catalog(self.state.to_query(self.limit))

    def update_filters(self, **changes: Any) -> None:
        self.state = self.state.with_filters(**changes)
        if self.preferences is not None:
            self.preferences.save(self.state)
        self.refresh()

    def go_to_page(self, page: int) -> None:
        self.state = self.state.with_page(page)
        self.refresh()

    def on_purchase_completed(self) -> None:
        self.refresh()

    def on_favorite_toggled(self) -> None:
        self.refresh()


__all__ = ["FilterPreferenceStore", "FilterState", "ViewProjection"]
