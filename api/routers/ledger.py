"""
Ledger API Endpoints.

Read-only view of the caller's balance and transaction history.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from api.deps import get_account_id, get_marketplace
from api.errors import http_error, unexpected_error
from api.models import LedgerResponse, Pagination
from api.serializers import transaction_response
from domain.errors import MarketplaceError
from services.container import MarketplaceContainer

router = APIRouter()


@router.get(
    "/ledger",
    response_model=LedgerResponse,
    summary="Transaction History",
    description="Current balance and transactions, newest first."
)
def get_ledger(
    page: int = Query(1, description="Clamped to 1..1000"),
    limit: int = Query(50, description="Clamped to 1..100"),
    account_id: UUID = Depends(get_account_id),
    marketplace: MarketplaceContainer = Depends(get_marketplace),
):
    try:
        history = marketplace.ledger.history(account_id, page=page, limit=limit)
        return LedgerResponse(
            balance=history.balance,
            transactions=[transaction_response(t) for t in history.transactions],
            pagination=Pagination(
                page=history.page,
                limit=history.limit,
                total=history.total,
                total_pages=history.total_pages,
            ),
        )

    except MarketplaceError as e:
        raise http_error(e)
    except Exception as e:
        raise unexpected_error("fetch ledger", e)
