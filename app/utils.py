"""Utility helpers for the TV Tracker service."""

from __future__ import annotations

import re
from typing import Any


YEAR_RE = re.compile(r"(19|20|21)\d{2}")


def parse_year(value: Any) -> int | None:
    """Return a plausible four-digit year from an upstream date or label."""

    if isinstance(value, int) and not isinstance(value, bool):
        return value if 1900 <= value <= 2100 else None
    if not value:
        return None
    match = YEAR_RE.search(str(value))
    if not match:
        return None
    year = int(match.group(0))
    if 1900 <= year <= 2100:
        return year
    return None


def optional_int(value: Any) -> int | None:
    """Coerce upstream numbers that may be missing, null or stringly typed."""

    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def optional_str(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    return cleaned or None


def pick_image(image: Any) -> str | None:
    """Prefer the medium artwork rendition, falling back to the original."""

    if not isinstance(image, dict):
        return None
    for key in ("medium", "original"):
        candidate = image.get(key)
        if isinstance(candidate, str) and candidate.startswith("http"):
            return candidate
    return None
