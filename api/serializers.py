"""Conversions from domain/service objects to API response models."""

from domain.ledger import LedgerTransaction
from domain.purchase import REMEDIATIONS, PurchaseFailure, PurchaseRecord

from api.models import PurchaseFailureResponse, PurchaseRecordResponse, TransactionResponse


def purchase_record_response(record: PurchaseRecord) -> PurchaseRecordResponse:
    return PurchaseRecordResponse(
        id=record.purchase_id,
        lead_id=record.lead_id,
        amount_paid=record.price,
        purchased_at=record.purchased_at,
        transaction_id=record.transaction_id,
    )


def failure_response(failure: PurchaseFailure) -> PurchaseFailureResponse:
    return PurchaseFailureResponse(
        lead_id=failure.lead_id,
        reason=failure.reason.value,
        remediation=REMEDIATIONS[failure.reason],
        detail=failure.detail,
    )


def transaction_response(txn: LedgerTransaction) -> TransactionResponse:
    return TransactionResponse(
        id=txn.transaction_id,
        type=txn.type.value,
        amount=txn.amount,
        balance_after=txn.balance_after,
        description=txn.description,
        metadata=dict(txn.metadata or {}),
        created_at=txn.created_at,
    )
