"""Result size caps for list endpoints."""

from __future__ import annotations

import os


DEFAULT_MAX_PAGE_SIZE = 200


def get_max_page_size() -> int:
    raw = os.getenv("API_MAX_PAGE_SIZE", str(DEFAULT_MAX_PAGE_SIZE))
    try:
        val = int(raw)
    except Exception:
        val = DEFAULT_MAX_PAGE_SIZE
    if val < 1:
        return DEFAULT_MAX_PAGE_SIZE
    return val


def clamp_limit(limit: int) -> int:
    max_size = get_max_page_size()
    if limit < 1:
        return 1
    return min(limit, max_size)
