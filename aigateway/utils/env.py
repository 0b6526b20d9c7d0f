"""Environment parsing helpers for consistent boolean/numeric/list handling. [IV]"""
from __future__ import annotations

import os
from typing import List, Optional


def get_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean env var with common truthy values."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def get_list(name: str, default: Optional[List[str]] = None, sep: str = ",") -> List[str]:
    """Split a delimited env var into stripped, non-empty items."""
    raw = os.getenv(name)
    if raw is None:
        return list(default or [])
    return [item.strip() for item in raw.split(sep) if item.strip()]


def clean_env_value(value: Optional[str]) -> Optional[str]:
    """Strip inline comments (``VALUE  # note``) and surrounding whitespace."""
    if not value:
        return value
    return value.split(" #")[0].strip()
