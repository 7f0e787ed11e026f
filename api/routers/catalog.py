"""
Catalog API Endpoints.

Endpoints for browsing purchasable leads and viewing a single lead.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from api.deps import get_account_id, get_marketplace
from api.errors import http_error, unexpected_error
from api.models import (
    CatalogFacets,
    CatalogLeadResponse,
    CatalogResponse,
    FacetCount,
    LeadDetailResponse,
    Pagination,
)
from domain.errors import MarketplaceError
from services.catalog_query import SortKey
from services.catalog_service import CatalogQuery
from services.container import MarketplaceContainer

router = APIRouter()


@router.get(
    "/catalog",
    response_model=CatalogResponse,
    summary="Browse Marketplace",
    description="Paged list of available leads the caller does not own, with optional filters and facets."
)
def list_catalog(
    search: Optional[str] = Query(None, description="Matches location, city, state, description or id"),
    state: Optional[List[str]] = Query(None, description="State abbreviations, repeated or comma separated"),
    services: Optional[List[str]] = Query(None, description="Services needed, any-of, repeated or comma separated"),
    sort: SortKey = Query(SortKey.NEWEST, description="newest, date, price or location"),
    favorites_only: bool = Query(False),
    include_facets: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    account_id: UUID = Depends(get_account_id),
    marketplace: MarketplaceContainer = Depends(get_marketplace),
):
    """
    Browse the marketplace.

    Leads the caller already purchased, sold leads and inactive leads are
    never returned, whatever filters are applied.

    **Example usage:**
    - `GET /api/v1/catalog?state=TX,CA&sort=price`
    - `GET /api/v1/catalog?services=photo&favorites_only=true&include_facets=true`
    """
    try:
        result = marketplace.catalog.list_catalog(
            account_id,
            CatalogQuery(
                search=search or "",
                states=tuple(state or ()),
                services=tuple(services or ()),
                sort=sort,
                favorites_only=favorites_only,
                include_facets=include_facets,
                page=page,
                limit=limit,
            ),
        )

        facets = None
        if result.facets is not None:
            facets = CatalogFacets(
                states=[FacetCount(value=v, count=c) for v, c in result.facets["states"]],
                services=[FacetCount(value=v, count=c) for v, c in result.facets["services"]],
            )

        return CatalogResponse(
            leads=[
                CatalogLeadResponse(
                    id=item.lead.lead_id,
                    wedding_date=item.lead.wedding_date,
                    location=item.lead.location,
                    city=item.lead.city,
                    state=item.lead.state,
                    services_needed=list(item.lead.services_needed),
                    description=item.lead.description,
                    price=item.lead.price,
                    status=item.lead.status.value,
                    tags=item.tags,
                    is_favorited=item.is_favorited,
                    created_at=item.lead.created_at,
                )
                for item in result.items
            ],
            pagination=Pagination(
                page=result.page, limit=result.limit, total=result.total, total_pages=result.total_pages
            ),
            facets=facets,
        )

    except MarketplaceError as e:
        raise http_error(e)
    except Exception as e:
        raise unexpected_error("query catalog", e)


@router.get(
    "/catalog/{lead_id}",
    response_model=LeadDetailResponse,
    summary="Get Lead Details",
    description="Single lead; full contact info is only returned to an account that purchased it."
)
def get_lead_detail(
    lead_id: UUID,
    account_id: UUID = Depends(get_account_id),
    marketplace: MarketplaceContainer = Depends(get_marketplace),
):
    try:
        detail = marketplace.catalog.get_lead_detail(account_id, lead_id)
        lead = detail.lead
        return LeadDetailResponse(
            id=lead.lead_id,
            wedding_date=lead.wedding_date,
            location=lead.location,
            city=lead.city,
            state=lead.state,
            services_needed=list(lead.services_needed),
            price=lead.price,
            status=lead.status.value,
            tags=detail.tags,
            purchased=detail.purchased,
            purchased_at=detail.purchased_at,
            is_favorited=detail.is_favorited,
            info=dict(detail.info),
            created_at=lead.created_at,
        )

    except MarketplaceError as e:
        raise http_error(e)
    except Exception as e:
        raise unexpected_error("fetch lead", e)
