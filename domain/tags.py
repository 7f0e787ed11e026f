"""
Dynamic lead tags computed at read time.

- NEW: lead created within the last 3 days, or purchased by the viewer within
  the last 7 days. A stored NEW tag is dropped when neither holds.
- HOT: a client responded within the last 10 days.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional

from .lead import Lead

NEW_TAG = "NEW"
HOT_TAG = "HOT"

NEW_LEAD_WINDOW = timedelta(days=3)
NEW_PURCHASE_WINDOW = timedelta(days=7)
HOT_RESPONSE_WINDOW = timedelta(days=10)


def calculate_dynamic_tags(lead: Lead, now: datetime, purchased_at: Optional[datetime] = None) -> List[str]:
    tags = list(lead.tags)

    is_new = lead.created_at >= now - NEW_LEAD_WINDOW
    if purchased_at is not None and purchased_at >= now - NEW_PURCHASE_WINDOW:
        is_new = True

    if NEW_TAG in tags and not is_new:
        tags.remove(NEW_TAG)
    elif is_new and NEW_TAG not in tags:
        tags.append(NEW_TAG)

    responded = lead.last_client_response_at
    if responded is not None and responded >= now - HOT_RESPONSE_WINDOW and HOT_TAG not in tags:
        tags.append(HOT_TAG)

    return tags
