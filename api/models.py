"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Money is serialized as strings to keep exact cents.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


# ============================================================================
# Catalog Models
# ============================================================================

class CatalogLeadResponse(BaseModel):
    """Single purchasable lead in the marketplace listing."""
    id: UUID
    wedding_date: Optional[date] = None
    location: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    services_needed: List[str]
    description: Optional[str] = None
    price: Decimal
    status: str
    tags: List[str]
    is_favorited: bool
    created_at: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "wedding_date": "2026-06-14",
                "location": "Austin, TX",
                "city": "Austin",
                "state": "TX",
                "services_needed": ["Photography", "Videography"],
                "description": "Outdoor ceremony, 120 guests",
                "price": "20.00",
                "status": "AVAILABLE",
                "tags": ["NEW"],
                "is_favorited": False,
                "created_at": "2026-01-01T12:00:00Z"
            }
        }


class FacetCount(BaseModel):
    value: str
    count: int


class CatalogFacets(BaseModel):
    states: List[FacetCount]
    services: List[FacetCount]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class CatalogResponse(BaseModel):
    """Paged marketplace listing."""
    leads: List[CatalogLeadResponse]
    pagination: Pagination
    facets: Optional[CatalogFacets] = None


class LeadDetailResponse(BaseModel):
    """Lead detail; ``info`` is full contact info only for the purchaser."""
    id: UUID
    wedding_date: Optional[date] = None
    location: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    services_needed: List[str]
    price: Decimal
    status: str
    tags: List[str]
    purchased: bool
    purchased_at: Optional[datetime] = None
    is_favorited: bool
    info: Dict[str, Any]
    created_at: datetime


class FavoriteResponse(BaseModel):
    success: bool = True
    lead_id: UUID
    is_favorited: bool


class FavoriteLeadResponse(BaseModel):
    id: UUID
    wedding_date: Optional[date] = None
    location: Optional[str] = None
    state: Optional[str] = None
    services_needed: List[str]
    price: Decimal
    status: str
    tags: List[str]
    favorited_at: datetime


class FavoritesListResponse(BaseModel):
    favorites: List[FavoriteLeadResponse]


# ============================================================================
# Purchase Models
# ============================================================================

class PurchaseLeadRequest(BaseModel):
    """Explicit confirmation of a single purchase."""
    confirmed: bool = Field(
        ...,
        description="Must be true; the buyer confirmed the price shown"
    )


class PurchaseRecordResponse(BaseModel):
    id: UUID
    lead_id: UUID
    amount_paid: Decimal
    purchased_at: datetime
    transaction_id: Optional[UUID] = None


class PurchaseResponse(BaseModel):
    """Response after a single purchase."""
    success: bool = True
    message: str
    purchase: PurchaseRecordResponse
    new_balance: Decimal
    full_info: Dict[str, Any]

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "message": "Lead purchased successfully",
                "purchase": {
                    "id": "123e4567-e89b-12d3-a456-426614174003",
                    "lead_id": "123e4567-e89b-12d3-a456-426614174000",
                    "amount_paid": "20.00",
                    "purchased_at": "2026-01-01T12:00:00Z",
                    "transaction_id": "123e4567-e89b-12d3-a456-426614174004"
                },
                "new_balance": "80.00",
                "full_info": {"name": "Jamie Doe", "phone": "+1 512 555 0100"}
            }
        }


class BulkPurchaseRequest(BaseModel):
    """Request to purchase several leads in order."""
    lead_ids: List[UUID] = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Leads to purchase, attempted in this order"
    )
    confirmed: bool = Field(
        ...,
        description="Must be true; the buyer confirmed the total shown"
    )


class PurchaseFailureResponse(BaseModel):
    lead_id: UUID
    reason: str
    remediation: str
    detail: Optional[str] = None


class BulkPurchaseResponse(BaseModel):
    """Partition of a bulk purchase. Partial failure is not an error."""
    succeeded: List[PurchaseRecordResponse]
    failed: List[PurchaseFailureResponse]
    skipped: List[PurchaseFailureResponse]
    balance_at_start: Decimal
    aggregate_cost: Decimal
    aggregate_affordable: bool
    total_paid: Decimal
    message: str

    class Config:
        json_schema_extra = {
            "example": {
                "succeeded": [],
                "failed": [
                    {
                        "lead_id": "123e4567-e89b-12d3-a456-426614174001",
                        "reason": "INSUFFICIENT_BALANCE",
                        "remediation": "prompt_deposit",
                        "detail": "Insufficient funds. Balance: $40.00, Required: $50.00"
                    }
                ],
                "skipped": [],
                "balance_at_start": "100.00",
                "aggregate_cost": "110.00",
                "aggregate_affordable": False,
                "total_paid": "60.00",
                "message": "Purchased 1 lead(s) successfully. 1 lead(s) failed."
            }
        }


class PurchasedLeadResponse(BaseModel):
    purchase: PurchaseRecordResponse
    wedding_date: Optional[date] = None
    location: Optional[str] = None
    state: Optional[str] = None
    services_needed: List[str]
    tags: List[str]
    full_info: Dict[str, Any]


class PurchasedLeadsResponse(BaseModel):
    leads: List[PurchasedLeadResponse]


class FeedbackRequest(BaseModel):
    booked: bool
    lead_responsive: str = Field(..., description="responsive, ghosted or partial")
    time_to_book: Optional[str] = None
    amount_charged: Optional[Decimal] = None


class FeedbackResponse(BaseModel):
    success: bool = True
    feedback_id: UUID
    reward_amount: Decimal
    new_balance: Decimal


# ============================================================================
# Ledger Models
# ============================================================================

class TransactionResponse(BaseModel):
    id: UUID
    type: str
    amount: Decimal
    balance_after: Decimal
    description: Optional[str] = None
    metadata: Dict[str, Any]
    created_at: datetime


class LedgerResponse(BaseModel):
    """Transaction history, newest first, with running balances."""
    balance: Decimal
    transactions: List[TransactionResponse]
    pagination: Pagination


class DepositRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, description="Amount received by the payment processor")
    reference: Optional[str] = Field(None, description="Payment processor reference")


class AdjustmentRequest(BaseModel):
    amount: Decimal = Field(..., description="Positive to credit, negative to debit")
    reason: str = Field(..., min_length=1)


class BalanceResponse(BaseModel):
    account_id: UUID
    balance: Decimal
    transaction: TransactionResponse
