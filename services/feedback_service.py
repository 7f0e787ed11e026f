"""
Lead feedback with balance reward.

A vendor who purchased a lead may report its outcome once. The feedback
record and the REWARD credit commit in the same unit of work.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID, uuid4

from domain.errors import FeedbackError
from domain.ledger import LedgerTransaction, TransactionType
from domain.money import MoneyLike, to_money
from domain.purchase import LeadFeedback, LeadResponsiveness
from domain.time import utc_now
from repositories.store import MarketplaceStore, UnitOfWork
from services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FeedbackSubmission:
    lead_id: UUID
    booked: bool
    lead_responsive: str
    time_to_book: Optional[str] = None
    amount_charged: Optional[MoneyLike] = None


@dataclass(frozen=True, slots=True)
class FeedbackReceipt:
    feedback: LeadFeedback
    reward: LedgerTransaction

    @property
    def new_balance(self) -> Decimal:
        return self.reward.balance_after


def _validate(submission: FeedbackSubmission) -> LeadResponsiveness:
    try:
        responsive = LeadResponsiveness(submission.lead_responsive)
    except ValueError:
        raise FeedbackError("VALIDATION_ERROR", "Invalid lead responsiveness value") from None
    if submission.booked and not submission.time_to_book:
        raise FeedbackError("VALIDATION_ERROR", "Time to book is required when lead booked")
    if submission.booked and not submission.amount_charged:
        raise FeedbackError("VALIDATION_ERROR", "Amount charged is required when lead booked")
    return responsive


class FeedbackService:
    def __init__(
        self,
        store: MarketplaceStore,
        ledger: LedgerService,
        *,
        reward: Decimal = Decimal("2.00"),
        clock: Callable[[], datetime] = utc_now,
        commit_attempts: int = 1,
    ):
        self.store = store
        self.ledger = ledger
        self.reward = to_money(reward)
        self.clock = clock
        self.commit_attempts = commit_attempts

    def submit(self, account_id: UUID, submission: FeedbackSubmission) -> FeedbackReceipt:
        """
        Record feedback and credit the reward.

        Raises:
            FeedbackError: FORBIDDEN (lead not purchased), ALREADY_SUBMITTED,
                or VALIDATION_ERROR
        """

        responsive = _validate(submission)

        def work(uow: UnitOfWork) -> FeedbackReceipt:
            if not uow.has_purchase(submission.lead_id):
                raise FeedbackError("FORBIDDEN", "You have not purchased this lead")
            if uow.has_feedback(submission.lead_id):
                raise FeedbackError("ALREADY_SUBMITTED", "You have already submitted feedback for this lead")

            feedback = LeadFeedback(
                feedback_id=uuid4(),
                account_id=account_id,
                lead_id=submission.lead_id,
                booked=submission.booked,
                lead_responsive=responsive,
                created_at=self.clock(),
                time_to_book=submission.time_to_book if submission.booked else None,
                amount_charged=to_money(submission.amount_charged) if submission.booked else None,
            )
            uow.add_feedback(feedback)
            reward = self.ledger.post_credit(
                uow,
                self.reward,
                TransactionType.REWARD,
                description=f"Feedback reward for lead {str(submission.lead_id)[:8]}",
                metadata={"lead_id": str(submission.lead_id), "feedback_id": str(feedback.feedback_id)},
            )
            return FeedbackReceipt(feedback=feedback, reward=reward)

        receipt = self.store.run_atomic(account_id, work, attempts=self.commit_attempts)
        logger.info(
            "Lead feedback submitted",
            extra={
                "account_id": str(account_id),
                "lead_id": str(submission.lead_id),
                "booked": submission.booked,
                "reward": str(self.reward),
            },
        )
        return receipt


__all__ = ["FeedbackReceipt", "FeedbackService", "FeedbackSubmission"]
