"""
Favorites API Endpoints.

Adding and removing a favorite are idempotent.
"""

from uuid import UUID

from fastapi import APIRouter, Depends

from api.deps import get_account_id, get_marketplace
from api.errors import http_error, unexpected_error
from api.models import FavoriteLeadResponse, FavoriteResponse, FavoritesListResponse
from domain.errors import MarketplaceError
from services.container import MarketplaceContainer

router = APIRouter()


@router.get("/favorites", response_model=FavoritesListResponse, summary="List Favorites")
def list_favorites(
    account_id: UUID = Depends(get_account_id),
    marketplace: MarketplaceContainer = Depends(get_marketplace),
):
    try:
        items = marketplace.catalog.list_favorites(account_id)
        return FavoritesListResponse(
            favorites=[
                FavoriteLeadResponse(
                    id=item.lead.lead_id,
                    wedding_date=item.lead.wedding_date,
                    location=item.lead.location,
                    state=item.lead.state,
                    services_needed=list(item.lead.services_needed),
                    price=item.lead.price,
                    status=item.lead.status.value,
                    tags=item.tags,
                    favorited_at=item.favorited_at,
                )
                for item in items
            ]
        )

    except MarketplaceError as e:
        raise http_error(e)
    except Exception as e:
        raise unexpected_error("list favorites", e)


@router.post("/favorites/{lead_id}", response_model=FavoriteResponse, summary="Add Favorite")
def add_favorite(
    lead_id: UUID,
    account_id: UUID = Depends(get_account_id),
    marketplace: MarketplaceContainer = Depends(get_marketplace),
):
    try:
        state = marketplace.catalog.add_favorite(account_id, lead_id)
        return FavoriteResponse(lead_id=lead_id, is_favorited=state)

    except MarketplaceError as e:
        raise http_error(e)
    except Exception as e:
        raise unexpected_error("add favorite", e)


@router.delete("/favorites/{lead_id}", response_model=FavoriteResponse, summary="Remove Favorite")
def remove_favorite(
    lead_id: UUID,
    account_id: UUID = Depends(get_account_id),
    marketplace: MarketplaceContainer = Depends(get_marketplace),
):
    try:
        state = marketplace.catalog.remove_favorite(account_id, lead_id)
        return FavoriteResponse(lead_id=lead_id, is_favorited=state)

    except MarketplaceError as e:
        raise http_error(e)
    except Exception as e:
        raise unexpected_error("remove favorite", e)
