"""
Domain: Lead entity.

A Lead is a prospective wedding client that vendors can buy from the
marketplace catalog.

Rules implemented here:
- status moves AVAILABLE -> SOLD exactly once; ``sold()`` refuses a second
  transition.
- ``active=False`` is a soft delete; such leads never appear in the catalog.
- created_at is a UTC timestamp.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Tuple
from uuid import UUID

from .money import ZERO, to_money
from .time import require_utc_timestamp


class LeadStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    SOLD = "SOLD"


@dataclass(frozen=True, slots=True)
class Lead:
    """
    Pure domain entity for a Lead.

    ``masked_info`` is what browsing vendors see; ``full_info`` (contact
    details) is revealed only to the account that purchased the lead.
    """

    lead_id: UUID
    price: Decimal
    created_at: datetime
    status: LeadStatus = LeadStatus.AVAILABLE
    active: bool = True
    wedding_date: Optional[date] = None
    location: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    services_needed: Tuple[str, ...] = ()
    description: Optional[str] = None
    tags: Tuple[str, ...] = ()
    last_client_response_at: Optional[datetime] = None
    masked_info: Mapping[str, Any] = field(default_factory=dict)
    full_info: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "price", to_money(self.price))
        if self.price <= ZERO:
            raise ValueError("price must be positive")
        object.__setattr__(self, "services_needed", tuple(self.services_needed))
        object.__setattr__(self, "tags", tuple(self.tags))
        require_utc_timestamp("created_at", self.created_at)
        if self.last_client_response_at is not None:
            require_utc_timestamp("last_client_response_at", self.last_client_response_at)

    @property
    def is_purchasable(self) -> bool:
        return self.active and self.status is LeadStatus.AVAILABLE

    def sold(self) -> "Lead":
        """Return a copy marked SOLD. Selling twice is a programming error."""

        if self.status is not LeadStatus.AVAILABLE:
            raise ValueError(f"Lead {self.lead_id} is already {self.status.value}")
        return replace(self, status=LeadStatus.SOLD)
