"""Dependency providers for routers."""

from __future__ import annotations

import hmac
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException

from services.container import MarketplaceContainer, get_container


def get_marketplace() -> MarketplaceContainer:
    return get_container()


def get_account_id(x_account_id: str = Header(..., alias="X-Account-Id")) -> UUID:
    """Account id supplied by the upstream identity provider (trusted)."""

    try:
        return UUID(x_account_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid UUID format for X-Account-Id") from None


def require_admin(
    x_admin_token: Optional[str] = Header(None, alias="X-Admin-Token"),
    marketplace: MarketplaceContainer = Depends(get_marketplace),
) -> str:
    expected = marketplace.settings.admin_token
    if not expected:
        raise HTTPException(status_code=403, detail="Admin endpoints are disabled")
    if not x_admin_token or not hmac.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=403, detail="Invalid admin token")
    return "admin"


__all__ = ["get_account_id", "get_marketplace", "require_admin"]
