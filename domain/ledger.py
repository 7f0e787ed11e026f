"""
Domain: ledger transactions.

Every balance change of an Account is recorded as exactly one immutable
LedgerTransaction. Transactions are never updated or deleted.

Audit invariant:
- Replaying an account's transactions in creation order from a balance of 0
  reproduces the current balance.
- Each record's balance_after equals the running sum through that record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping, Optional
from uuid import UUID, uuid4

from .errors import LedgerInvariantViolation
from .money import ZERO, to_money
from .time import require_utc_timestamp


class TransactionType(str, Enum):
    DEPOSIT = "DEPOSIT"
    PURCHASE = "PURCHASE"
    ADJUSTMENT = "ADJUSTMENT"
    REWARD = "REWARD"


@dataclass(frozen=True, slots=True)
class LedgerTransaction:
    """Immutable ledger entry. ``amount`` is signed: credits > 0, debits < 0."""

    transaction_id: UUID
    account_id: UUID
    type: TransactionType
    amount: Decimal
    balance_after: Decimal
    created_at: datetime
    description: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_money(self.amount))
        object.__setattr__(self, "balance_after", to_money(self.balance_after))
        require_utc_timestamp("created_at", self.created_at)
        if self.amount == ZERO:
            raise ValueError("ledger transactions must move money")
        if self.balance_after < ZERO:
            raise ValueError("balance_after must not be negative")

    @property
    def is_credit(self) -> bool:
        return self.amount > ZERO


def build_transaction(
    *,
    account_id: UUID,
    current_balance: Decimal,
    signed_amount: Decimal,
    type: TransactionType,
    created_at: datetime,
    description: Optional[str] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> LedgerTransaction:
    """Build the next entry for an account whose committed balance is ``current_balance``."""

    return LedgerTransaction(
        transaction_id=uuid4(),
        account_id=account_id,
        type=type,
        amount=signed_amount,
        balance_after=to_money(current_balance) + to_money(signed_amount),
        created_at=created_at,
        description=description,
        metadata=dict(metadata or {}),
    )


def replay_balance(transactions: Iterable[LedgerTransaction]) -> Decimal:
    """
    Replay transactions (oldest first) and return the resulting balance.

    Raises LedgerInvariantViolation when a balance_after does not match the
    running sum or the running sum ever goes negative.
    """

    running = ZERO
    for txn in transactions:
        running += txn.amount
        if running < ZERO:
            raise LedgerInvariantViolation(
                f"Running balance negative at transaction {txn.transaction_id}"
            )
        if txn.balance_after != running:
            raise LedgerInvariantViolation(
                f"Transaction {txn.transaction_id} records balance_after={txn.balance_after} "
                f"but running sum is {running}"
            )
    return running


def verify_account_ledger(balance: Decimal, transactions: Iterable[LedgerTransaction]) -> None:
    """Raise LedgerInvariantViolation unless the log reproduces ``balance``."""

    replayed = replay_balance(transactions)
    if replayed != to_money(balance):
        raise LedgerInvariantViolation(
            f"Ledger replay gives {replayed} but account balance is {to_money(balance)}"
        )
