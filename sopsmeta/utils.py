"""
Shared utility helpers.

This module contains small, reusable helpers that do not belong
to the metadata model, rule evaluation, or format handling.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional

from .config import LASTMODIFIED_FORMAT


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """Return ``now`` (default: the current instant) as ``YYYY-MM-DDTHH:MM:SSZ``."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    else:
        now = now.astimezone(timezone.utc)
    return now.strftime(LASTMODIFIED_FORMAT)


# ---------------------------------------------------------------------------
# Value probes
# ---------------------------------------------------------------------------


def is_mapping(value: Any) -> bool:
    """Return True for dict-like values decoded from JSON or YAML."""
    return isinstance(value, Mapping)


def is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def none_if_empty(value: Optional[str]) -> Optional[str]:
    """Treat an empty rule string as not configured."""
    if value is None or value == "":
        return None
    return value
