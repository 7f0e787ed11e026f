"""
Supabase-backed MarketplaceStore.

Reads go through PostgREST table queries. Writes are staged on a unit of work
and committed in one call to the ``commit_ledger_batch`` PostgreSQL function
(see sql/ledger_functions.sql), which:
- locks the account row (FOR UPDATE) and compares its balance with the
  balance the unit of work started from;
- locks every updated lead row and compares its status;
- inserts ledger transactions, purchases and feedback and updates the balance
  and lead statuses in the same database transaction.

A mismatch returns CONFLICT and nothing is written; MarketplaceStore.run_atomic
re-runs the unit of work against fresh state.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional
from uuid import UUID

from domain.account import Account, BillingProfile
from domain.errors import AccountNotFound, CommitConflict, StoreError
from domain.lead import Lead, LeadStatus
from domain.ledger import LedgerTransaction, TransactionType
from domain.money import ZERO
from domain.purchase import Favorite, LeadFeedback, PurchaseRecord
from domain.time import parse_utc_datetime, require_utc_timestamp
from repositories.store import MarketplaceStore, UnitOfWork

logger = logging.getLogger(__name__)

# Keep these aligned with sql/ledger_functions.sql.
_ACCOUNTS_TABLE = "accounts"
_BILLING_TABLE = "billing_profiles"
_LEADS_TABLE = "leads"
_TRANSACTIONS_TABLE = "ledger_transactions"
_PURCHASES_TABLE = "purchases"
_FAVORITES_TABLE = "favorites"
_FEEDBACK_TABLE = "lead_feedback"
_COMMIT_FUNCTION = "commit_ledger_batch"

_PAGE_SIZE = 1000
_UNIQUE_VIOLATION = "23505"


def _to_iso_utc(dt: datetime, *, name: str) -> str:
    require_utc_timestamp(name, dt)
    return dt.isoformat()


def _rows(response: Any, action: str) -> List[Mapping[str, Any]]:
    error = getattr(response, "error", None)
    if error:
        raise StoreError(f"Failed to {action}: {error}")
    return getattr(response, "data", None) or []


def _optional_dt(value: Any) -> Optional[datetime]:
    return parse_utc_datetime(value) if value else None


def _row_to_account(row: Mapping[str, Any]) -> Account:
    return Account(
        account_id=UUID(str(row["account_id"])),
        balance=Decimal(str(row["balance"])),
        business_name=row.get("business_name"),
        email=row.get("email"),
        vendor_type=row.get("vendor_type"),
        created_at=_optional_dt(row.get("created_at_utc")),
    )


def _row_to_billing(row: Mapping[str, Any]) -> BillingProfile:
    return BillingProfile(
        account_id=UUID(str(row["account_id"])),
        first_name=row.get("first_name"),
        last_name=row.get("last_name"),
        company_name=row.get("company_name"),
        is_company=bool(row.get("is_company", False)),
        address_line1=row.get("address_line1"),
        address_line2=row.get("address_line2"),
        city=row.get("city"),
        state=row.get("state"),
        zip=row.get("zip"),
        country=row.get("country"),
    )


def _row_to_lead(row: Mapping[str, Any]) -> Lead:
    wedding_date = row.get("wedding_date")
    return Lead(
        lead_id=UUID(str(row["lead_id"])),
        price=Decimal(str(row["price"])),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        status=LeadStatus(str(row["status"])),
        active=bool(row.get("active", True)),
        wedding_date=date.fromisoformat(str(wedding_date)[:10]) if wedding_date else None,
        location=row.get("location"),
        city=row.get("city"),
        state=row.get("state"),
        services_needed=tuple(row.get("services_needed") or ()),
        description=row.get("description"),
        tags=tuple(row.get("tags") or ()),
        last_client_response_at=_optional_dt(row.get("last_client_response_at_utc")),
        masked_info=row.get("masked_info") or {},
        full_info=row.get("full_info") or {},
    )


def _row_to_transaction(row: Mapping[str, Any]) -> LedgerTransaction:
    return LedgerTransaction(
        transaction_id=UUID(str(row["transaction_id"])),
        account_id=UUID(str(row["account_id"])),
        type=TransactionType(str(row["type"])),
        amount=Decimal(str(row["amount"])),
        balance_after=Decimal(str(row["balance_after"])),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        description=row.get("description"),
        metadata=row.get("metadata") or {},
    )


def _row_to_purchase(row: Mapping[str, Any]) -> PurchaseRecord:
    txn_id = row.get("transaction_id")
    return PurchaseRecord(
        purchase_id=UUID(str(row["purchase_id"])),
        lead_id=UUID(str(row["lead_id"])),
        account_id=UUID(str(row["account_id"])),
        price=Decimal(str(row["price"])),
        purchased_at=parse_utc_datetime(row["purchased_at_utc"]),
        transaction_id=UUID(str(txn_id)) if txn_id else None,
    )


def _row_to_favorite(row: Mapping[str, Any]) -> Favorite:
    return Favorite(
        account_id=UUID(str(row["account_id"])),
        lead_id=UUID(str(row["lead_id"])),
        created_at=parse_utc_datetime(row["created_at_utc"]),
    )


def _transaction_payload(txn: LedgerTransaction) -> Dict[str, Any]:
    return {
        "transaction_id": str(txn.transaction_id),
        "account_id": str(txn.account_id),
        "type": txn.type.value,
        "amount": str(txn.amount),
        "balance_after": str(txn.balance_after),
        "description": txn.description,
        "metadata": dict(txn.metadata),
        "created_at_utc": _to_iso_utc(txn.created_at, name="created_at"),
    }


def _purchase_payload(record: PurchaseRecord) -> Dict[str, Any]:
    return {
        "purchase_id": str(record.purchase_id),
        "lead_id": str(record.lead_id),
        "account_id": str(record.account_id),
        "price": str(record.price),
        "purchased_at_utc": _to_iso_utc(record.purchased_at, name="purchased_at"),
        "transaction_id": str(record.transaction_id) if record.transaction_id else None,
    }


def _feedback_payload(feedback: LeadFeedback) -> Dict[str, Any]:
    return {
        "feedback_id": str(feedback.feedback_id),
        "account_id": str(feedback.account_id),
        "lead_id": str(feedback.lead_id),
        "booked": feedback.booked,
        "lead_responsive": feedback.lead_responsive.value,
        "time_to_book": feedback.time_to_book,
        "amount_charged": str(feedback.amount_charged) if feedback.amount_charged is not None else None,
        "created_at_utc": _to_iso_utc(feedback.created_at, name="created_at"),
    }


class _SupabaseUnitOfWork(UnitOfWork):
    def __init__(self, store: "SupabaseStore", account: Account, billing: Optional[BillingProfile]):
        super().__init__(account, billing)
        self._store = store

    def _read_lead(self, lead_id: UUID) -> Optional[Lead]:
        return self._store.get_lead(lead_id)

    def _read_has_purchase(self, lead_id: UUID) -> bool:
        return self._store.get_purchase(self.account.account_id, lead_id) is not None

    def _read_has_feedback(self, lead_id: UUID) -> bool:
        response = (
            self._store.client.table(_FEEDBACK_TABLE)
            .select("feedback_id")
            .eq("account_id", str(self.account.account_id))
            .eq("lead_id", str(lead_id))
            .limit(1)
            .execute()
        )
        return bool(_rows(response, "check feedback"))

    def commit_payload(self) -> Dict[str, Any]:
        return {
            "p_account_id": str(self.account.account_id),
            "p_expected_balance": str(self.opening_balance),
            "p_new_balance": str(self.account.balance),
            "p_transactions": [_transaction_payload(t) for t in self.transactions],
            "p_lead_updates": [
                {
                    "lead_id": str(lead_id),
                    "expected_status": self.expected_lead_status(lead_id).value,
                    "status": lead.status.value,
                }
                for lead_id, lead in self.lead_updates.items()
            ],
            "p_purchases": [_purchase_payload(p) for p in self.purchases],
            "p_feedback": [_feedback_payload(f) for f in self.feedback],
        }


class SupabaseStore(MarketplaceStore):
    def __init__(self, client: Any = None):
        if client is None:
            from repositories.client import get_supabase

            client = get_supabase()
        self.client = client

    def _select_one(self, table: str, column: str, value: Any, action: str) -> Optional[Mapping[str, Any]]:
        response = self.client.table(table).select("*").eq(column, str(value)).limit(1).execute()
        rows = _rows(response, action)
        return rows[0] if rows else None

    def _fetch_all(self, build_query: Callable[[], Any], action: str) -> List[Mapping[str, Any]]:
        """Page through a query; PostgREST caps each response."""

        rows: List[Mapping[str, Any]] = []
        start = 0
        while True:
            batch = _rows(build_query().range(start, start + _PAGE_SIZE - 1).execute(), action)
            rows.extend(batch)
            if len(batch) < _PAGE_SIZE:
                return rows
            start += _PAGE_SIZE

    # -- unit of work ---------------------------------------------------

    @contextmanager
    def unit_of_work(self, account_id: UUID, lead_ids: Iterable[UUID] = ()) -> Iterator[UnitOfWork]:
        account = self.get_account(account_id)
        if account is None:
            raise AccountNotFound(account_id)
        uow = _SupabaseUnitOfWork(self, account, self.get_billing_profile(account_id))
        yield uow
        if uow.has_changes:
            self._commit(uow)

    def _commit(self, uow: _SupabaseUnitOfWork) -> None:
        from postgrest.exceptions import APIError

        try:
            response = self.client.rpc(_COMMIT_FUNCTION, uow.commit_payload()).execute()
            error = getattr(response, "error", None)
            if error:
                raise StoreError(f"{_COMMIT_FUNCTION} failed: {error}")
            result = response.data or {}
        except APIError as e:
            # supabase-py may raise APIError for a JSON body returned by the function.
            try:
                result = e.json() if callable(getattr(e, "json", None)) else {}
            except ValueError:
                result = {}
            if not result:
                raise StoreError(f"{_COMMIT_FUNCTION} failed: {e}") from e

        if result.get("success"):
            return
        if result.get("error") == "CONFLICT":
            logger.warning(
                "Ledger batch conflict",
                extra={"account_id": str(uow.account.account_id), "detail": result.get("message")},
            )
            raise CommitConflict(result.get("message") or "Committed state changed")
        raise StoreError(f"{_COMMIT_FUNCTION} rejected batch: {result.get('error')}: {result.get('message')}")

    # -- accounts and billing -----------------------------------------

    def get_account(self, account_id: UUID) -> Optional[Account]:
        row = self._select_one(_ACCOUNTS_TABLE, "account_id", account_id, "fetch account")
        return _row_to_account(row) if row else None

    def list_account_ids(self) -> List[UUID]:
        rows = self._fetch_all(
            lambda: self.client.table(_ACCOUNTS_TABLE).select("account_id").order("account_id"),
            "list accounts",
        )
        return [UUID(str(row["account_id"])) for row in rows]

    def create_account(self, account: Account) -> Account:
        if account.balance != ZERO:
            raise StoreError("Accounts must be created with a zero balance")
        payload = {
            "account_id": str(account.account_id),
            "balance": str(ZERO),
            "business_name": account.business_name,
            "email": account.email,
            "vendor_type": account.vendor_type,
            "created_at_utc": account.created_at.isoformat() if account.created_at else None,
        }
        _rows(self.client.table(_ACCOUNTS_TABLE).insert(payload).execute(), "create account")
        return account

    def get_billing_profile(self, account_id: UUID) -> Optional[BillingProfile]:
        row = self._select_one(_BILLING_TABLE, "account_id", account_id, "fetch billing profile")
        return _row_to_billing(row) if row else None

    def save_billing_profile(self, profile: BillingProfile) -> None:
        payload = {
            "account_id": str(profile.account_id),
            "first_name": profile.first_name,
            "last_name": profile.last_name,
            "company_name": profile.company_name,
            "is_company": profile.is_company,
            "address_line1": profile.address_line1,
            "address_line2": profile.address_line2,
            "city": profile.city,
            "state": profile.state,
            "zip": profile.zip,
            "country": profile.country,
        }
        _rows(self.client.table(_BILLING_TABLE).upsert(payload).execute(), "save billing profile")

    # -- catalog --------------------------------------------------------

    def get_lead(self, lead_id: UUID) -> Optional[Lead]:
        row = self._select_one(_LEADS_TABLE, "lead_id", lead_id, "fetch lead")
        return _row_to_lead(row) if row else None

    def get_leads(self, lead_ids) -> Dict[UUID, Lead]:
        if not lead_ids:
            return {}
        response = (
            self.client.table(_LEADS_TABLE)
            .select("*")
            .in_("lead_id", [str(lead_id) for lead_id in lead_ids])
            .execute()
        )
        leads = [_row_to_lead(row) for row in _rows(response, "fetch leads")]
        return {lead.lead_id: lead for lead in leads}

    def list_leads(self, *, status: Optional[LeadStatus] = None, active_only: bool = True) -> List[Lead]:
        def build_query() -> Any:
            query = self.client.table(_LEADS_TABLE).select("*")
            if status is not None:
                query = query.eq("status", status.value)
            if active_only:
                query = query.eq("active", True)
            return query.order("created_at_utc", desc=True)

        return [_row_to_lead(row) for row in self._fetch_all(build_query, "list leads")]

    def add_lead(self, lead: Lead) -> None:
        payload = {
            "lead_id": str(lead.lead_id),
            "status": lead.status.value,
            "price": str(lead.price),
            "active": lead.active,
            "wedding_date": lead.wedding_date.isoformat() if lead.wedding_date else None,
            "location": lead.location,
            "city": lead.city,
            "state": lead.state,
            "services_needed": list(lead.services_needed),
            "description": lead.description,
            "tags": list(lead.tags),
            "last_client_response_at_utc": (
                lead.last_client_response_at.isoformat() if lead.last_client_response_at else None
            ),
            "masked_info": dict(lead.masked_info),
            "full_info": dict(lead.full_info),
            "created_at_utc": _to_iso_utc(lead.created_at, name="created_at"),
        }
        _rows(self.client.table(_LEADS_TABLE).insert(payload).execute(), "insert lead")

    # -- purchases ------------------------------------------------------

    def list_purchases(self, account_id: UUID) -> List[PurchaseRecord]:
        rows = self._fetch_all(
            lambda: (
                self.client.table(_PURCHASES_TABLE)
                .select("*")
                .eq("account_id", str(account_id))
                .order("purchased_at_utc", desc=True)
            ),
            "list purchases",
        )
        return [_row_to_purchase(row) for row in rows]

    def get_purchase(self, account_id: UUID, lead_id: UUID) -> Optional[PurchaseRecord]:
        response = (
            self.client.table(_PURCHASES_TABLE)
            .select("*")
            .eq("account_id", str(account_id))
            .eq("lead_id", str(lead_id))
            .limit(1)
            .execute()
        )
        rows = _rows(response, "fetch purchase")
        return _row_to_purchase(rows[0]) if rows else None

    def count_purchases_for_lead(self, lead_id: UUID) -> int:
        response = (
            self.client.table(_PURCHASES_TABLE)
            .select("purchase_id", count="exact")
            .eq("lead_id", str(lead_id))
            .execute()
        )
        _rows(response, "count purchases")
        return getattr(response, "count", 0) or 0

    # -- ledger ---------------------------------------------------------

    def list_transactions(
        self,
        account_id: UUID,
        *,
        newest_first: bool = False,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[LedgerTransaction]:
        def build_query() -> Any:
            return (
                self.client.table(_TRANSACTIONS_TABLE)
                .select("*")
                .eq("account_id", str(account_id))
                .order("seq", desc=newest_first)
            )

        if limit is None:
            rows = self._fetch_all(build_query, "list transactions")[offset:]
        else:
            response = build_query().range(offset, offset + limit - 1).execute()
            rows = _rows(response, "list transactions")
        return [_row_to_transaction(row) for row in rows]

    def count_transactions(self, account_id: UUID) -> int:
        response = (
            self.client.table(_TRANSACTIONS_TABLE)
            .select("transaction_id", count="exact")
            .eq("account_id", str(account_id))
            .execute()
        )
        _rows(response, "count transactions")
        return getattr(response, "count", 0) or 0

    # -- favorites ------------------------------------------------------

    def add_favorite(self, account_id: UUID, lead_id: UUID, created_at: datetime) -> bool:
        from postgrest.exceptions import APIError

        payload = {
            "account_id": str(account_id),
            "lead_id": str(lead_id),
            "created_at_utc": _to_iso_utc(created_at, name="created_at"),
        }
        try:
            _rows(self.client.table(_FAVORITES_TABLE).insert(payload).execute(), "add favorite")
        except APIError as e:
            if getattr(e, "code", None) == _UNIQUE_VIOLATION:
                return False
            raise
        return True

    def remove_favorite(self, account_id: UUID, lead_id: UUID) -> bool:
        response = (
            self.client.table(_FAVORITES_TABLE)
            .delete()
            .eq("account_id", str(account_id))
            .eq("lead_id", str(lead_id))
            .execute()
        )
        return bool(_rows(response, "remove favorite"))

    def list_favorites(self, account_id: UUID) -> List[Favorite]:
        rows = self._fetch_all(
            lambda: (
                self.client.table(_FAVORITES_TABLE)
                .select("*")
                .eq("account_id", str(account_id))
                .order("created_at_utc", desc=True)
            ),
            "list favorites",
        )
        return [_row_to_favorite(row) for row in rows]


__all__ = ["SupabaseStore"]
