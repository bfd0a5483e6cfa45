"""Shared identity normalization helpers."""

from __future__ import annotations

import re
from typing import Any, Optional


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(value: Any) -> str:
    """Trim and lower-case an email address for storage and lookup."""
    return str(value or "").strip().lower()


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value or ""))


def normalize_name(value: Any) -> str:
    return str(value or "").strip()


def parse_positive_id(value: Any) -> Optional[int]:
    """Parse a path/body identifier; None when it is not a positive integer."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    text = str(value or "").strip()
    if not text.isdigit():
        return None
    parsed = int(text)
    return parsed if parsed > 0 else None
