"""
Supabase client initialization.

Only the connection setup lives here. The client is created on first use so
that the in-memory backend (and the test suite) never needs credentials.

Environment variables (read through config.get_settings):
- SUPABASE_URL: Supabase project URL
- SUPABASE_KEY: server-side Supabase API key
"""

from __future__ import annotations

from functools import lru_cache

# The dependency is `supabase` (supabase-py): `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

from config import get_settings


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_key:
        raise RuntimeError(
            "Missing SUPABASE_URL or SUPABASE_KEY. Both are required for STORE_BACKEND=supabase."
        )
    return create_client(settings.supabase_url, settings.supabase_key)


__all__ = ["get_supabase"]
