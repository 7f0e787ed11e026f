"""
Tests for `services/feedback_service.py`.

Covers contract rules:
- only a purchaser may submit feedback, once per lead.
- booked feedback requires time_to_book and amount_charged.
- the feedback record and its REWARD credit commit together.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import ACCOUNT_ID
from domain.errors import FeedbackError
from domain.ledger import TransactionType
from services.feedback_service import FeedbackSubmission


@pytest.fixture
def purchased(funded):
    lead = funded.add_lead("20.00")
    funded.executor.purchase(ACCOUNT_ID, lead.lead_id)
    return lead


def test_feedback_credits_reward(funded, purchased) -> None:
    receipt = funded.feedback.submit(
        ACCOUNT_ID, FeedbackSubmission(purchased.lead_id, booked=False, lead_responsive="ghosted")
    )

    assert receipt.reward.type is TransactionType.REWARD
    assert receipt.reward.amount == Decimal("2.00")
    assert receipt.new_balance == Decimal("82.00")
    assert receipt.reward.metadata["feedback_id"] == str(receipt.feedback.feedback_id)
    assert funded.ledger.audit(ACCOUNT_ID) == Decimal("82.00")


def test_booked_feedback_keeps_details(funded, purchased) -> None:
    receipt = funded.feedback.submit(
        ACCOUNT_ID,
        FeedbackSubmission(
            purchased.lead_id,
            booked=True,
            lead_responsive="responsive",
            time_to_book="1-2 weeks",
            amount_charged="3500",
        ),
    )

    assert receipt.feedback.time_to_book == "1-2 weeks"
    assert receipt.feedback.amount_charged == Decimal("3500.00")


def _error_code(funded, submission) -> str:
    with pytest.raises(FeedbackError) as exc_info:
        funded.feedback.submit(ACCOUNT_ID, submission)
    return exc_info.value.code


def test_feedback_requires_purchase(funded) -> None:
    lead = funded.add_lead()

    assert _error_code(funded, FeedbackSubmission(lead.lead_id, False, "ghosted")) == "FORBIDDEN"
    assert funded.ledger.balance(ACCOUNT_ID) == Decimal("100.00")


def test_feedback_only_once(funded, purchased) -> None:
    funded.feedback.submit(ACCOUNT_ID, FeedbackSubmission(purchased.lead_id, False, "partial"))

    assert _error_code(funded, FeedbackSubmission(purchased.lead_id, False, "partial")) == "ALREADY_SUBMITTED"
    assert funded.ledger.balance(ACCOUNT_ID) == Decimal("82.00")


@pytest.mark.parametrize(
    "submission_kwargs",
    [
        {"booked": False, "lead_responsive": "maybe"},
        {"booked": True, "lead_responsive": "responsive", "amount_charged": "100"},
        {"booked": True, "lead_responsive": "responsive", "time_to_book": "1 week"},
    ],
)
def test_feedback_validation(funded, purchased, submission_kwargs) -> None:
    submission = FeedbackSubmission(purchased.lead_id, **submission_kwargs)

    assert _error_code(funded, submission) == "VALIDATION_ERROR"
    assert funded.store.count_transactions(ACCOUNT_ID) == 2
