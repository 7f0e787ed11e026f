"""
Pure catalog filtering, sorting, faceting and pagination.

Shared by the server-side catalog listing and the client-side view projection
so both order and filter leads identically.
"""

from __future__ import annotations

import math
from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from domain.lead import Lead

T = TypeVar("T")

US_STATE_ABBRS = frozenset(
    """
    AL AK AZ AR CA CO CT DE FL GA HI ID IL IN IA KS KY LA ME MD MA MI MN MS MO MT NE NV NH NJ
    NM NY NC ND OH OK OR PA RI SC SD TN TX UT VT VA WA WV WI WY DC PR
    """.split()
)


class SortKey(str, Enum):
    NEWEST = "newest"
    DATE = "date"
    PRICE = "price"
    LOCATION = "location"


def parse_csv(values: Optional[Iterable[str]]) -> List[str]:
    """Accept repeated and comma separated values: ["a,b", "c"] -> ["a", "b", "c"]."""

    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    return [part.strip() for value in values for part in str(value).split(",") if part.strip()]


def normalize_states(values: Optional[Iterable[str]]) -> List[str]:
    """Upper-case and keep only valid US state abbreviations."""

    return [s.upper() for s in parse_csv(values) if s.upper() in US_STATE_ABBRS]


def matches_search(lead: Lead, term: str) -> bool:
    term = term.strip().lower()
    if not term:
        return True
    fields = (lead.location, lead.city, lead.state, lead.description, str(lead.lead_id))
    return any(term in field.lower() for field in fields if field)


def matches_states(lead: Lead, states: Sequence[str]) -> bool:
    if not states:
        return True
    return bool(lead.state) and lead.state.upper() in states


def matches_services(lead: Lead, services: Sequence[str]) -> bool:
    """Any requested service is a case-insensitive substring of any needed service."""

    if not services:
        return True
    needed = [s.lower() for s in lead.services_needed]
    return any(wanted.lower() in have for wanted in services for have in needed)


def filter_leads(
    leads: Iterable[Lead],
    *,
    search: str = "",
    states: Sequence[str] = (),
    services: Sequence[str] = (),
) -> List[Lead]:
    return [
        lead
        for lead in leads
        if matches_search(lead, search) and matches_states(lead, states) and matches_services(lead, services)
    ]


def sort_leads(leads: Iterable[Lead], key: SortKey) -> List[Lead]:
    """Sort with Python's stable sort so ties keep their input order."""

    items = list(leads)
    if key is SortKey.NEWEST:
        return sorted(items, key=lambda lead: lead.created_at, reverse=True)
    if key is SortKey.DATE:
        return sorted(items, key=lambda lead: (lead.wedding_date is None, lead.wedding_date or date.min))
    if key is SortKey.PRICE:
        return sorted(items, key=lambda lead: lead.price)
    if key is SortKey.LOCATION:
        return sorted(items, key=lambda lead: lead.location or "")
    raise ValueError(f"Unknown sort key: {key!r}")


def paginate(items: Sequence[T], page: int, limit: int) -> Tuple[List[T], int]:
    """Return (page_items, total_pages). Pages are 1-based."""

    page = max(1, page)
    limit = max(1, limit)
    start = (page - 1) * limit
    return list(items[start:start + limit]), math.ceil(len(items) / limit)


def _counted(counts: Dict[str, int]) -> List[Tuple[str, int]]:
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


def compute_facets(leads: Iterable[Lead]) -> Dict[str, List[Tuple[str, int]]]:
    """State and service counts, count descending then value ascending."""

    states: Dict[str, int] = {}
    services: Dict[str, int] = {}
    for lead in leads:
        if lead.state and lead.state.upper() in US_STATE_ABBRS:
            key = lead.state.upper()
            states[key] = states.get(key, 0) + 1
        for service in lead.services_needed:
            if service:
                services[service] = services.get(service, 0) + 1
    return {"states": _counted(states), "services": _counted(services)}


__all__ = [
    "SortKey",
    "US_STATE_ABBRS",
    "compute_facets",
    "filter_leads",
    "normalize_states",
    "paginate",
    "parse_csv",
    "sort_leads",
]
