"""
Tests for `services/catalog_service.py` and `services/catalog_query.py`.

Covers contract rules:
- the catalog never lists leads the viewer owns, sold leads or inactive leads.
- search, state and service filters combine; invalid states are ignored.
- sort keys, with unknown wedding dates last for the date sort.
- favorites are idempotent and only fail for unknown leads.
- contact info is revealed only to the purchaser.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import ACCOUNT_ID, NOW, OTHER_ACCOUNT_ID
from domain.errors import LeadNotFound
from domain.lead import LeadStatus
from services.catalog_query import SortKey, normalize_states, paginate, parse_csv
from services.catalog_service import CatalogQuery


def _ids(page):
    return [item.lead.lead_id for item in page.items]


def test_catalog_excludes_owned_sold_and_inactive(funded) -> None:
    visible = funded.add_lead("10.00")
    owned = funded.add_lead("10.00")
    funded.add_lead("10.00", status=LeadStatus.SOLD)
    funded.add_lead("10.00", active=False)
    funded.executor.purchase(ACCOUNT_ID, owned.lead_id)

    page = funded.catalog.list_catalog(ACCOUNT_ID)

    assert _ids(page) == [visible.lead_id]
    assert page.total == 1


def test_purchase_removes_lead_for_every_viewer(funded) -> None:
    funded.add_account(OTHER_ACCOUNT_ID)
    lead = funded.add_lead("10.00")
    assert _ids(funded.catalog.list_catalog(OTHER_ACCOUNT_ID)) == [lead.lead_id]

    funded.executor.purchase(ACCOUNT_ID, lead.lead_id)

    assert _ids(funded.catalog.list_catalog(OTHER_ACCOUNT_ID)) == []


def test_filters_combine(funded) -> None:
    austin = funded.add_lead(state="TX", services_needed=("Photography", "Videography"))
    funded.add_lead(state="TX", services_needed=("Florist",))
    napa = funded.add_lead(state="CA", location="Napa Valley", services_needed=("Wedding Photography",))

    by_state = funded.catalog.list_catalog(ACCOUNT_ID, CatalogQuery(states=("tx", "ZZ")))
    by_service = funded.catalog.list_catalog(ACCOUNT_ID, CatalogQuery(services=("photo",)))
    combined = funded.catalog.list_catalog(ACCOUNT_ID, CatalogQuery(states=("CA",), services=("PHOTO,dj",)))
    searched = funded.catalog.list_catalog(ACCOUNT_ID, CatalogQuery(search=" napa "))

    assert by_state.total == 2
    assert set(_ids(by_service)) == {austin.lead_id, napa.lead_id}
    assert _ids(combined) == [napa.lead_id]
    assert _ids(searched) == [napa.lead_id]


def test_search_matches_lead_id(funded) -> None:
    lead = funded.add_lead()
    funded.add_lead()

    page = funded.catalog.list_catalog(ACCOUNT_ID, CatalogQuery(search=str(lead.lead_id)[:8]))

    assert _ids(page) == [lead.lead_id]


def test_sort_keys(funded) -> None:
    old = funded.add_lead("30.00", created_at=NOW - timedelta(days=20), wedding_date=None, location="Boston")
    mid = funded.add_lead("10.00", created_at=NOW - timedelta(days=10), wedding_date=date(2026, 8, 1), location="Austin")
    new = funded.add_lead("20.00", created_at=NOW - timedelta(days=1), wedding_date=date(2026, 5, 1), location="Chicago")

    def ordered(sort):
        return _ids(funded.catalog.list_catalog(ACCOUNT_ID, CatalogQuery(sort=sort)))

    assert ordered(SortKey.NEWEST) == [new.lead_id, mid.lead_id, old.lead_id]
    assert ordered(SortKey.DATE) == [new.lead_id, mid.lead_id, old.lead_id]
    assert ordered(SortKey.PRICE) == [mid.lead_id, new.lead_id, old.lead_id]
    assert ordered("location") == [mid.lead_id, old.lead_id, new.lead_id]


def test_pagination(funded) -> None:
    for _ in range(5):
        funded.add_lead()

    page = funded.catalog.list_catalog(ACCOUNT_ID, CatalogQuery(page=3, limit=2))

    assert page.total == 5
    assert page.total_pages == 3
    assert len(page.items) == 1
    assert funded.catalog.list_catalog(ACCOUNT_ID, CatalogQuery(page=4, limit=2)).items == []


def test_facets_count_filtered_leads(funded) -> None:
    funded.add_lead(state="TX", services_needed=("DJ", "Florist"))
    funded.add_lead(state="TX", services_needed=("DJ",))
    funded.add_lead(state="CA", services_needed=("Catering",))
    funded.add_lead(state="Texas", services_needed=())

    page = funded.catalog.list_catalog(ACCOUNT_ID, CatalogQuery(include_facets=True))

    assert page.facets["states"] == [("TX", 2), ("CA", 1)]
    assert page.facets["services"] == [("DJ", 2), ("Catering", 1), ("Florist", 1)]
    assert funded.catalog.list_catalog(ACCOUNT_ID).facets is None


def test_favorites_are_idempotent(funded) -> None:
    lead = funded.add_lead()

    assert funded.catalog.add_favorite(ACCOUNT_ID, lead.lead_id) is True
    assert funded.catalog.add_favorite(ACCOUNT_ID, lead.lead_id) is True
    assert [f.lead.lead_id for f in funded.catalog.list_favorites(ACCOUNT_ID)] == [lead.lead_id]

    assert funded.catalog.remove_favorite(ACCOUNT_ID, lead.lead_id) is False
    assert funded.catalog.remove_favorite(ACCOUNT_ID, lead.lead_id) is False
    assert funded.catalog.list_favorites(ACCOUNT_ID) == []

    assert funded.catalog.toggle_favorite(ACCOUNT_ID, lead.lead_id) is True
    assert funded.catalog.toggle_favorite(ACCOUNT_ID, lead.lead_id) is False

    with pytest.raises(LeadNotFound):
        funded.catalog.add_favorite(ACCOUNT_ID, uuid4())


def test_favorites_only_and_flags(funded) -> None:
    liked = funded.add_lead()
    funded.add_lead()
    funded.catalog.add_favorite(ACCOUNT_ID, liked.lead_id)

    all_leads = funded.catalog.list_catalog(ACCOUNT_ID)
    only = funded.catalog.list_catalog(ACCOUNT_ID, CatalogQuery(favorites_only=True))

    assert {item.lead.lead_id: item.is_favorited for item in all_leads.items}[liked.lead_id] is True
    assert _ids(only) == [liked.lead_id]


def test_detail_reveals_contact_info_only_to_purchaser(funded) -> None:
    lead = funded.add_lead()

    before = funded.catalog.get_lead_detail(ACCOUNT_ID, lead.lead_id)
    funded.executor.purchase(ACCOUNT_ID, lead.lead_id)
    after = funded.catalog.get_lead_detail(ACCOUNT_ID, lead.lead_id)

    assert not before.purchased
    assert before.info == {"name": "A*** R***"}
    assert after.purchased
    assert after.purchased_at == NOW
    assert after.info["phone"] == "+1 512 555 0100"
    assert "NEW" in after.tags

    with pytest.raises(LeadNotFound):
        funded.catalog.get_lead_detail(ACCOUNT_ID, uuid4())


def test_purchased_leads_list(funded) -> None:
    lead = funded.add_lead("15.00")
    funded.executor.purchase(ACCOUNT_ID, lead.lead_id)

    purchased = funded.catalog.list_purchased_leads(ACCOUNT_ID)

    assert [p.lead.lead_id for p in purchased] == [lead.lead_id]
    assert purchased[0].purchase.price == Decimal("15.00")
    assert purchased[0].lead.status is LeadStatus.SOLD


def test_query_helpers() -> None:
    assert parse_csv(["a, b", "", "c"]) == ["a", "b", "c"]
    assert parse_csv("x,y") == ["x", "y"]
    assert normalize_states(["ny", "XX,ca"]) == ["NY", "CA"]
    assert paginate([1, 2, 3], 2, 2) == ([3], 2)
    assert paginate([], 1, 20) == ([], 0)
    assert CatalogQuery(page=0, limit=1000).normalized().limit == 100
