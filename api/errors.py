"""
Translation of domain exceptions into HTTP errors.

Precondition failures carry a machine-readable ``code`` and the
``remediation`` the client should offer.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException

from domain.errors import (
    AccountNotFound,
    FeedbackError,
    InsufficientFunds,
    InvalidAmount,
    LeadNotFound,
    LedgerInvariantViolation,
    MarketplaceError,
    PurchaseRejected,
)
from domain.purchase import REMEDIATIONS, BlockReason

logger = logging.getLogger(__name__)

REJECTION_STATUS = {
    BlockReason.NO_BILLING_ADDRESS: 422,
    BlockReason.ALREADY_OWNED: 409,
    BlockReason.INSUFFICIENT_BALANCE: 402,
    BlockReason.ABANDONED: 409,
    BlockReason.COMMIT_FAILED: 503,
}

FEEDBACK_STATUS = {
    "FORBIDDEN": 403,
    "ALREADY_SUBMITTED": 409,
    "VALIDATION_ERROR": 400,
}


def http_error(exc: MarketplaceError) -> HTTPException:
    if isinstance(exc, PurchaseRejected):
        return HTTPException(
            status_code=REJECTION_STATUS[exc.reason],
            detail={"code": exc.reason.value, "message": str(exc), "remediation": exc.remediation},
        )
    if isinstance(exc, InsufficientFunds):
        reason = BlockReason.INSUFFICIENT_BALANCE
        return HTTPException(
            status_code=402,
            detail={"code": reason.value, "message": str(exc), "remediation": REMEDIATIONS[reason]},
        )
    if isinstance(exc, (LeadNotFound, AccountNotFound)):
        return HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": str(exc)})
    if isinstance(exc, InvalidAmount):
        return HTTPException(status_code=400, detail={"code": "INVALID_AMOUNT", "message": str(exc)})
    if isinstance(exc, FeedbackError):
        return HTTPException(
            status_code=FEEDBACK_STATUS.get(exc.code, 400), detail={"code": exc.code, "message": str(exc)}
        )
    if isinstance(exc, LedgerInvariantViolation):
        logger.error("Ledger invariant violation", exc_info=exc)
        return HTTPException(status_code=500, detail={"code": "INTERNAL_ERROR", "message": "Ledger inconsistency"})
    logger.error("Marketplace backend failure", exc_info=exc)
    return HTTPException(status_code=500, detail={"code": "INTERNAL_ERROR", "message": str(exc)})


def unexpected_error(action: str, exc: Exception) -> HTTPException:
    logger.exception("Unexpected error while trying to %s", action)
    return HTTPException(status_code=500, detail=f"Failed to {action}: {exc}")
