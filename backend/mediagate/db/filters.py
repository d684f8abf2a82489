"""Query filter helpers."""
from __future__ import annotations

LIKE_ESCAPE = "\\"


def contains_pattern(keyword: str) -> str:
    """``LIKE`` pattern matching ``keyword`` literally anywhere; use with ``escape=LIKE_ESCAPE``."""

    escaped = keyword.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2).replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
