"""
Runtime configuration.

Values come from environment variables. A ``.env`` file next to this module
is loaded first so local runs do not need exported variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from domain.money import to_money

env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)

_TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True, slots=True)
class Settings:
    store_backend: str = "memory"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    log_level: str = "INFO"
    feedback_reward: Decimal = Decimal("2.00")
    bulk_strict_affordability: bool = False
    ledger_commit_retries: int = 3
    admin_token: Optional[str] = None
    cors_origins: Tuple[str, ...] = ("*",)

    def __post_init__(self) -> None:
        if self.store_backend not in ("memory", "supabase"):
            raise RuntimeError(
                f"Unsupported STORE_BACKEND: {self.store_backend!r}. Use 'memory' or 'supabase'."
            )
        if self.store_backend == "supabase":
            if not self.supabase_url:
                raise RuntimeError(
                    "Missing environment variable: SUPABASE_URL. "
                    "Set SUPABASE_URL to your Supabase project URL."
                )
            if not self.supabase_key:
                raise RuntimeError(
                    "Missing environment variable: SUPABASE_KEY. "
                    "Set SUPABASE_KEY to your Supabase API key."
                )
        if self.ledger_commit_retries < 1:
            raise RuntimeError("LEDGER_COMMIT_RETRIES must be at least 1")


def load_settings() -> Settings:
    """Build Settings from the current environment."""

    origins = os.getenv("CORS_ORIGINS", "*")
    return Settings(
        store_backend=os.getenv("STORE_BACKEND", "memory").strip().lower(),
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_KEY"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        feedback_reward=to_money(os.getenv("FEEDBACK_REWARD", "2.00")),
        bulk_strict_affordability=_env_bool("BULK_STRICT_AFFORDABILITY", False),
        ledger_commit_retries=int(os.getenv("LEDGER_COMMIT_RETRIES", "3")),
        admin_token=os.getenv("ADMIN_TOKEN") or None,
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


__all__ = ["Settings", "get_settings", "load_settings"]
