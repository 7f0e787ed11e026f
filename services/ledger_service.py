"""
Ledger service: the only code that changes an account balance.

Every successful call appends exactly one LedgerTransaction and moves the
balance in the same unit of work. Debits never take a balance below zero;
a failed debit writes nothing.

Public operations open their own unit of work. The ``post_*`` helpers are for
callers (purchase executor, feedback) that already hold one and need the
ledger entry to commit together with their own writes.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, List, Mapping, Optional
from uuid import UUID

from domain.errors import (
    AccountNotFound,
    CommitConflict,
    InsufficientFunds,
    InvalidAmount,
    LedgerInvariantViolation,
)
from domain.ledger import LedgerTransaction, TransactionType, build_transaction, verify_account_ledger
from domain.money import ZERO, MoneyLike, has_subcent_precision, to_money
from domain.time import utc_now
from repositories.store import MarketplaceStore, UnitOfWork

logger = logging.getLogger(__name__)

MAX_PAGE = 1000
MAX_LIMIT = 100
DEFAULT_LIMIT = 50
# Balance reads are retried when a commit races the audit.
AUDIT_ATTEMPTS = 3


@dataclass(frozen=True, slots=True)
class LedgerPage:
    """One page of an account's history, newest first."""

    transactions: List[LedgerTransaction]
    balance: Decimal
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


def _validate_amount(amount: MoneyLike) -> Decimal:
    try:
        raw = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        if not raw.is_finite() or raw <= ZERO:
            raise InvalidAmount(f"Amount must be positive, got {amount!r}")
        if has_subcent_precision(raw):
            raise InvalidAmount(f"Amount must have at most two decimal places, got {amount!r}")
        return to_money(raw)
    except (ArithmeticError, ValueError) as e:
        raise InvalidAmount(f"Not a monetary amount: {amount!r}") from e


def clamp_page(page: int, limit: int) -> tuple[int, int]:
    return max(1, min(MAX_PAGE, page)), max(1, min(MAX_LIMIT, limit))


class LedgerService:
    def __init__(
        self,
        store: MarketplaceStore,
        *,
        clock: Callable[[], datetime] = utc_now,
        commit_attempts: int = 1,
    ):
        self.store = store
        self.clock = clock
        self.commit_attempts = commit_attempts

    # -- within an existing unit of work -------------------------------

    def post_credit(
        self,
        uow: UnitOfWork,
        amount: MoneyLike,
        type: TransactionType,
        description: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> LedgerTransaction:
        value = _validate_amount(amount)
        txn = build_transaction(
            account_id=uow.account.account_id,
            current_balance=uow.account.balance,
            signed_amount=value,
            type=type,
            created_at=self.clock(),
            description=description,
            metadata=metadata,
        )
        uow.post(txn)
        return txn

    def post_debit(
        self,
        uow: UnitOfWork,
        amount: MoneyLike,
        type: TransactionType,
        description: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> LedgerTransaction:
        """Stage a debit; raises InsufficientFunds (staging nothing) if amount > balance."""

        value = _validate_amount(amount)
        balance = uow.account.balance
        if value > balance:
            raise InsufficientFunds(uow.account.account_id, balance, value)
        txn = build_transaction(
            account_id=uow.account.account_id,
            current_balance=balance,
            signed_amount=-value,
            type=type,
            created_at=self.clock(),
            description=description,
            metadata=metadata,
        )
        uow.post(txn)
        return txn

    # -- standalone operations -------------------------------------------

    def credit(
        self,
        account_id: UUID,
        amount: MoneyLike,
        type: TransactionType = TransactionType.DEPOSIT,
        description: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> LedgerTransaction:
        """
        Add funds to an account.

        Args:
            account_id: Account to credit
            amount: Positive amount with at most two decimal places
            type: DEPOSIT, REWARD or ADJUSTMENT
            description: Human readable description
            metadata: Free-form context stored with the transaction

        Returns:
            The committed LedgerTransaction
        """

        txn = self.store.run_atomic(
            account_id,
            lambda uow: self.post_credit(uow, amount, type, description, metadata),
            attempts=self.commit_attempts,
        )
        logger.info(
            "Ledger credit",
            extra={
                "account_id": str(account_id),
                "type": txn.type.value,
                "amount": str(txn.amount),
                "balance_after": str(txn.balance_after),
            },
        )
        return txn

    def debit(
        self,
        account_id: UUID,
        amount: MoneyLike,
        type: TransactionType = TransactionType.PURCHASE,
        description: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> LedgerTransaction:
        """
        Remove funds from an account.

        Raises:
            InsufficientFunds: amount exceeds the committed balance; nothing is written.
        """

        txn = self.store.run_atomic(
            account_id,
            lambda uow: self.post_debit(uow, amount, type, description, metadata),
            attempts=self.commit_attempts,
        )
        logger.info(
            "Ledger debit",
            extra={
                "account_id": str(account_id),
                "type": txn.type.value,
                "amount": str(txn.amount),
                "balance_after": str(txn.balance_after),
            },
        )
        return txn

    def adjust(
        self,
        account_id: UUID,
        amount: MoneyLike,
        reason: str,
        actor_id: Optional[str] = None,
    ) -> LedgerTransaction:
        """Administrative correction. Positive amounts credit, negative amounts debit."""

        try:
            signed = Decimal(str(amount))
        except ArithmeticError as e:
            raise InvalidAmount(f"Not a monetary amount: {amount!r}") from e
        if not reason or not reason.strip():
            raise InvalidAmount("Adjustments require a reason")
        metadata = {"reason": reason, "actor_id": actor_id}
        if signed < ZERO:
            return self.debit(account_id, -signed, TransactionType.ADJUSTMENT, reason, metadata)
        return self.credit(account_id, signed, TransactionType.ADJUSTMENT, reason, metadata)

    # -- reads -----------------------------------------------------------

    def balance(self, account_id: UUID) -> Decimal:
        account = self.store.get_account(account_id)
        if account is None:
            raise AccountNotFound(account_id)
        return account.balance

    def history(self, account_id: UUID, page: int = 1, limit: int = DEFAULT_LIMIT) -> LedgerPage:
        page, limit = clamp_page(page, limit)
        balance = self.balance(account_id)
        transactions = self.store.list_transactions(
            account_id, newest_first=True, offset=(page - 1) * limit, limit=limit
        )
        return LedgerPage(
            transactions=transactions,
            balance=balance,
            page=page,
            limit=limit,
            total=self.store.count_transactions(account_id),
        )

    def audit(self, account_id: UUID) -> Decimal:
        """
        Replay the account's log and compare with its balance.

        Takes no lock. The balance is read before and after the log; the pair
        only counts when both reads agree and the replay matches. A commit
        landing between the reads makes the attempt inconclusive, so it is
        repeated up to ``AUDIT_ATTEMPTS`` times.

        Raises:
            LedgerInvariantViolation: the log disagrees with a stable balance
                and no attempt passes
            CommitConflict: the balance changed during every attempt
        """

        violation: Optional[LedgerInvariantViolation] = None
        for attempt in range(1, AUDIT_ATTEMPTS + 1):
            before = self.balance(account_id)
            transactions = self.store.list_transactions(account_id)
            after = self.balance(account_id)
            if before != after:
                logger.info(
                    "Balance changed during ledger audit, retrying",
                    extra={"account_id": str(account_id), "attempt": attempt},
                )
                continue
            try:
                verify_account_ledger(after, transactions)
            except LedgerInvariantViolation as e:
                violation = e
                continue
            return after

        if violation is None:
            raise CommitConflict(f"Account {account_id} changed during every audit attempt")
        logger.error("Ledger audit failed", extra={"account_id": str(account_id)}, exc_info=violation)
        raise violation


__all__ = ["LedgerPage", "LedgerService", "clamp_page"]
