"""
Admin API Endpoints.

Balance credits recorded after the payment processor confirms a deposit,
and signed manual adjustments. Guarded by ``X-Admin-Token``.
"""

from uuid import UUID

from fastapi import APIRouter, Depends

from api.deps import get_marketplace, require_admin
from api.errors import http_error, unexpected_error
from api.models import AdjustmentRequest, BalanceResponse, DepositRequest
from api.serializers import transaction_response
from domain.errors import MarketplaceError
from domain.ledger import TransactionType
from services.container import MarketplaceContainer

router = APIRouter()


@router.post(
    "/admin/accounts/{account_id}/deposits",
    response_model=BalanceResponse,
    summary="Record Deposit"
)
def record_deposit(
    account_id: UUID,
    request: DepositRequest,
    actor: str = Depends(require_admin),
    marketplace: MarketplaceContainer = Depends(get_marketplace),
):
    try:
        metadata = {"reference": request.reference} if request.reference else None
        txn = marketplace.ledger.credit(
            account_id,
            request.amount,
            TransactionType.DEPOSIT,
            description="Balance deposit",
            metadata=metadata,
        )
        return BalanceResponse(account_id=account_id, balance=txn.balance_after, transaction=transaction_response(txn))

    except MarketplaceError as e:
        raise http_error(e)
    except Exception as e:
        raise unexpected_error("record deposit", e)


@router.post(
    "/admin/accounts/{account_id}/adjustments",
    response_model=BalanceResponse,
    summary="Adjust Balance",
    description="Positive amounts credit, negative amounts debit. A debit never takes the balance below zero."
)
def adjust_balance(
    account_id: UUID,
    request: AdjustmentRequest,
    actor: str = Depends(require_admin),
    marketplace: MarketplaceContainer = Depends(get_marketplace),
):
    try:
        txn = marketplace.ledger.adjust(account_id, request.amount, request.reason, actor_id=actor)
        return BalanceResponse(account_id=account_id, balance=txn.balance_after, transaction=transaction_response(txn))

    except MarketplaceError as e:
        raise http_error(e)
    except Exception as e:
        raise unexpected_error("adjust balance", e)
