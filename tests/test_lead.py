"""
Tests for `domain/lead.py`, `domain/account.py`, `domain/money.py` and `domain/tags.py`.

Covers contract rules:
- created_at must be a UTC timestamp.
- price is quantized to cents and must be positive.
- a lead can be sold exactly once.
- billing profile completeness.
- dynamic NEW/HOT tags.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from conftest import NOW, make_lead
from domain.account import Account, BillingProfile
from domain.lead import Lead, LeadStatus
from domain.money import has_subcent_precision, to_money
from domain.tags import calculate_dynamic_tags

ACCOUNT = UUID("00000000-0000-0000-0000-000000000001")


def test_lead_created_at_must_be_utc() -> None:
    """Verify created_at must be timezone-aware UTC (offset 0)."""

    with pytest.raises(ValueError):
        make_lead(created_at=datetime(2026, 1, 1, 0, 0, 0))

    with pytest.raises(ValueError):
        make_lead(created_at=datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone(timedelta(hours=-5))))


def test_lead_price_is_quantized_and_positive() -> None:
    assert make_lead(price="19.999").price == Decimal("20.00")

    with pytest.raises(ValueError):
        make_lead(price="0")
    with pytest.raises(ValueError):
        make_lead(price="-5.00")


def test_lead_sold_once() -> None:
    lead = make_lead()
    assert lead.is_purchasable

    sold = lead.sold()
    assert sold.status is LeadStatus.SOLD
    assert not sold.is_purchasable
    assert lead.status is LeadStatus.AVAILABLE

    with pytest.raises(ValueError):
        sold.sold()


def test_inactive_lead_is_not_purchasable() -> None:
    assert not make_lead(active=False).is_purchasable


def test_lead_is_immutable() -> None:
    lead = make_lead()

    with pytest.raises(FrozenInstanceError):
        lead.price = Decimal("1.00")  # type: ignore[misc]


def test_lead_services_are_tuples() -> None:
    lead = Lead(lead_id=ACCOUNT, price="10", created_at=NOW, services_needed=["DJ", "Florist"])
    assert lead.services_needed == ("DJ", "Florist")


def test_money_conversion() -> None:
    assert to_money(0.1 + 0.2) == Decimal("0.30")
    assert to_money("2.005") == Decimal("2.01")
    assert has_subcent_precision(Decimal("1.001"))
    assert not has_subcent_precision(Decimal("1.10"))

    with pytest.raises(ValueError):
        to_money("ten dollars")
    with pytest.raises(ValueError):
        to_money("NaN")
    with pytest.raises(ValueError):
        to_money("1e30")


def test_account_balance_never_negative() -> None:
    with pytest.raises(ValueError):
        Account(account_id=ACCOUNT, balance="-0.01")

    assert Account(account_id=ACCOUNT, balance="5").balance == Decimal("5.00")


def test_billing_profile_completeness() -> None:
    assert BillingProfile(account_id=ACCOUNT).missing_fields() == [
        "address_line1",
        "city",
        "state",
        "zip",
        "name",
    ]

    person = BillingProfile(
        account_id=ACCOUNT,
        first_name="Ava",
        last_name="Reyes",
        address_line1="12 Main St",
        city="Austin",
        state="TX",
        zip="78701",
    )
    assert person.is_complete()

    company = BillingProfile(
        account_id=ACCOUNT,
        company_name="Reyes Photo LLC",
        is_company=True,
        address_line1="12 Main St",
        city="Austin",
        state="TX",
        zip="  ",
    )
    assert company.missing_fields() == ["zip"]

    no_name = BillingProfile(
        account_id=ACCOUNT,
        first_name="Ava",
        is_company=True,
        address_line1="12 Main St",
        city="Austin",
        state="TX",
        zip="78701",
    )
    assert no_name.missing_fields() == ["company_name"]


def test_new_tag_for_recent_leads() -> None:
    assert calculate_dynamic_tags(make_lead(created_at=NOW - timedelta(days=2)), NOW) == ["NEW"]
    assert calculate_dynamic_tags(make_lead(created_at=NOW - timedelta(days=4)), NOW) == []


def test_stale_stored_new_tag_is_dropped() -> None:
    lead = make_lead(created_at=NOW - timedelta(days=30), tags=("NEW", "Verified"))
    assert calculate_dynamic_tags(lead, NOW) == ["Verified"]


def test_new_tag_for_recent_purchase() -> None:
    lead = make_lead(created_at=NOW - timedelta(days=30))

    assert calculate_dynamic_tags(lead, NOW, purchased_at=NOW - timedelta(days=6)) == ["NEW"]
    assert calculate_dynamic_tags(lead, NOW, purchased_at=NOW - timedelta(days=8)) == []


def test_hot_tag_for_recent_client_response() -> None:
    hot = make_lead(last_client_response_at=NOW - timedelta(days=9))
    cold = make_lead(last_client_response_at=NOW - timedelta(days=11))

    assert calculate_dynamic_tags(hot, NOW) == ["HOT"]
    assert calculate_dynamic_tags(cold, NOW) == []
