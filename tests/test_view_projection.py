"""
Tests for `services/view_projection.py`.

Covers contract rules:
- purchase and favorite events refetch catalog and balance but keep selections.
- changing a filter resets the page; changing the page does not touch filters.
- persisted preferences are a convenience; unreadable files mean defaults.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import ACCOUNT_ID
from services.catalog_query import SortKey
from services.view_projection import FilterPreferenceStore, FilterState, ViewProjection


@pytest.fixture
def view(funded) -> ViewProjection:
    for _ in range(5):
        funded.add_lead("10.00", state="TX")
    funded.add_lead("10.00", state="CA")
    projection = ViewProjection.for_services(ACCOUNT_ID, funded.catalog, funded.ledger, limit=2)
    projection.refresh()
    return projection


def test_filter_change_resets_page(view) -> None:
    view.go_to_page(2)
    assert view.state.page == 2

    view.update_filters(states=["TX"], sort="price")

    assert view.state.page == 1
    assert view.state.states == ("TX",)
    assert view.state.sort is SortKey.PRICE
    assert view.catalog.total == 5


def test_page_change_keeps_filters(view) -> None:
    view.update_filters(states=["TX"])
    view.go_to_page(3)

    assert view.state.states == ("TX",)
    assert view.state.page == 3
    assert len(view.catalog.items) == 1


def test_purchase_refreshes_server_state_and_keeps_selections(funded, view) -> None:
    view.update_filters(states=["TX"])
    view.go_to_page(2)
    bought = view.catalog.items[0].lead

    funded.executor.purchase(ACCOUNT_ID, bought.lead_id)
    view.on_purchase_completed()

    assert view.balance == Decimal("90.00")
    assert view.catalog.total == 4
    assert view.state.states == ("TX",)
    assert view.state.page == 2
    assert bought.lead_id not in [item.lead.lead_id for item in view.catalog.items]


def test_page_is_clamped_when_catalog_shrinks(funded, view) -> None:
    view.update_filters(states=["CA"])
    assert view.catalog.total_pages == 1
    view.go_to_page(3)

    assert view.state.page == 1
    assert len(view.catalog.items) == 1


def test_favorite_toggle_refreshes(funded, view) -> None:
    lead = view.catalog.items[0].lead
    funded.catalog.toggle_favorite(ACCOUNT_ID, lead.lead_id)
    view.on_favorite_toggled()

    assert view.catalog.items[0].is_favorited


def test_with_filters_rejects_page() -> None:
    with pytest.raises(ValueError):
        FilterState().with_filters(page=3)


def test_preferences_round_trip_without_page(tmp_path, funded) -> None:
    prefs = FilterPreferenceStore(tmp_path / "prefs" / "filters.json")
    view = ViewProjection.for_services(ACCOUNT_ID, funded.catalog, funded.ledger, preferences=prefs)

    view.update_filters(search="garden", states=["NY"], sort=SortKey.DATE, favorites_only=True)
    view.go_to_page(4)

    restored = prefs.load()
    assert restored == FilterState(
        search="garden", states=("NY",), sort=SortKey.DATE, favorites_only=True
    )
    assert ViewProjection.for_services(ACCOUNT_ID, funded.catalog, funded.ledger, preferences=prefs).state == restored


def test_corrupt_preferences_fall_back_to_defaults(tmp_path) -> None:
    path = tmp_path / "filters.json"
    path.write_text("{not json", encoding="utf-8")
    assert FilterPreferenceStore(path).load() == FilterState()

    path.write_text('{"sort": "sideways"}', encoding="utf-8")
    assert FilterPreferenceStore(path).load() == FilterState()

    assert FilterPreferenceStore(tmp_path / "missing.json").load() == FilterState()
