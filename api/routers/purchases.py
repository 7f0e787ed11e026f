"""
Purchases API Endpoints.

Endpoints for buying leads one at a time or in bulk, listing owned leads
and submitting post-purchase feedback.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_account_id, get_marketplace
from api.errors import http_error, unexpected_error
from api.models import (
    BulkPurchaseRequest,
    BulkPurchaseResponse,
    FeedbackRequest,
    FeedbackResponse,
    PurchasedLeadResponse,
    PurchasedLeadsResponse,
    PurchaseLeadRequest,
    PurchaseResponse,
)
from api.serializers import failure_response, purchase_record_response
from domain.errors import MarketplaceError
from services.container import MarketplaceContainer
from services.feedback_service import FeedbackSubmission

router = APIRouter()

CONFIRMATION_REQUIRED = {
    "code": "CONFIRMATION_REQUIRED",
    "message": "Purchases must be explicitly confirmed",
}


@router.post(
    "/purchases/bulk",
    response_model=BulkPurchaseResponse,
    summary="Bulk Purchase",
    description="Purchase several leads in order. Each lead succeeds or fails on its own."
)
def bulk_purchase(
    request: BulkPurchaseRequest,
    account_id: UUID = Depends(get_account_id),
    marketplace: MarketplaceContainer = Depends(get_marketplace),
):
    """
    Purchase several leads sequentially.

    **Process:**
    1. Drops duplicates and leads that are owned, sold or unknown (listed in `skipped`)
    2. Checks billing once; an incomplete profile fails every lead
    3. Compares the balance with the total cost (reported as `aggregate_affordable`)
    4. Attempts each lead in order; a failure never rolls back earlier successes

    Partial failure is not an HTTP error: inspect `failed`.
    """
    if not request.confirmed:
        raise HTTPException(status_code=400, detail=CONFIRMATION_REQUIRED)
    try:
        result = marketplace.bulk.purchase_many(account_id, request.lead_ids)

        message = f"Purchased {len(result.succeeded)} lead(s) successfully."
        if result.failed:
            message += f" {len(result.failed)} lead(s) failed."
        if result.skipped:
            message += f" {len(result.skipped)} lead(s) skipped."

        return BulkPurchaseResponse(
            succeeded=[purchase_record_response(p) for p in result.succeeded],
            failed=[failure_response(f) for f in result.failed],
            skipped=[failure_response(f) for f in result.skipped],
            balance_at_start=result.balance_at_start,
            aggregate_cost=result.aggregate_cost,
            aggregate_affordable=result.aggregate_affordable,
            total_paid=result.total_paid,
            message=message,
        )

    except MarketplaceError as e:
        raise http_error(e)
    except Exception as e:
        raise unexpected_error("execute bulk purchase", e)


@router.post(
    "/purchases/{lead_id}",
    response_model=PurchaseResponse,
    summary="Purchase Lead",
    description="Purchase a single lead after checking billing, ownership and balance."
)
def purchase_lead(
    lead_id: UUID,
    request: PurchaseLeadRequest,
    account_id: UUID = Depends(get_account_id),
    marketplace: MarketplaceContainer = Depends(get_marketplace),
):
    """
    Purchase one lead.

    **Blocked purchases** return the first failing precondition:
    - 422 `NO_BILLING_ADDRESS` (remediation `open_billing_form`)
    - 409 `ALREADY_OWNED` (remediation `remove_from_view`)
    - 402 `INSUFFICIENT_BALANCE` (remediation `prompt_deposit`)
    """
    if not request.confirmed:
        raise HTTPException(status_code=400, detail=CONFIRMATION_REQUIRED)
    try:
        receipt = marketplace.executor.purchase(account_id, lead_id)
        return PurchaseResponse(
            message="Lead purchased successfully",
            purchase=purchase_record_response(receipt.purchase),
            new_balance=receipt.balance_after,
            full_info=dict(receipt.lead.full_info),
        )

    except MarketplaceError as e:
        raise http_error(e)
    except Exception as e:
        raise unexpected_error("execute purchase", e)


@router.get("/purchases", response_model=PurchasedLeadsResponse, summary="List Purchased Leads")
def list_purchased_leads(
    account_id: UUID = Depends(get_account_id),
    marketplace: MarketplaceContainer = Depends(get_marketplace),
):
    try:
        items = marketplace.catalog.list_purchased_leads(account_id)
        return PurchasedLeadsResponse(
            leads=[
                PurchasedLeadResponse(
                    purchase=purchase_record_response(item.purchase),
                    wedding_date=item.lead.wedding_date,
                    location=item.lead.location,
                    state=item.lead.state,
                    services_needed=list(item.lead.services_needed),
                    tags=item.tags,
                    full_info=dict(item.lead.full_info),
                )
                for item in items
            ]
        )

    except MarketplaceError as e:
        raise http_error(e)
    except Exception as e:
        raise unexpected_error("list purchased leads", e)


@router.post(
    "/purchases/{lead_id}/feedback",
    response_model=FeedbackResponse,
    summary="Submit Lead Feedback",
    description="Report the outcome of a purchased lead once and receive a balance reward."
)
def submit_feedback(
    lead_id: UUID,
    request: FeedbackRequest,
    account_id: UUID = Depends(get_account_id),
    marketplace: MarketplaceContainer = Depends(get_marketplace),
):
    try:
        receipt = marketplace.feedback.submit(
            account_id,
            FeedbackSubmission(
                lead_id=lead_id,
                booked=request.booked,
                lead_responsive=request.lead_responsive,
                time_to_book=request.time_to_book,
                amount_charged=request.amount_charged,
            ),
        )
        return FeedbackResponse(
            feedback_id=receipt.feedback.feedback_id,
            reward_amount=receipt.reward.amount,
            new_balance=receipt.new_balance,
        )

    except MarketplaceError as e:
        raise http_error(e)
    except Exception as e:
        raise unexpected_error("submit feedback", e)
