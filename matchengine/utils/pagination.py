"""Pagination helpers shared by the listing operations."""

from typing import Optional, Tuple


def normalize_pagination(
    limit: Optional[int],
    offset: Optional[int],
    default_limit: int,
    max_limit: int,
) -> Tuple[int, int]:
    """
    Clamp limit/offset into the range the listing queries accept.

    Non-positive or missing limits fall back to `default_limit`; limits above
    `max_limit` are capped. Negative or missing offsets become 0.

    Returns:
        Tuple[int, int]: (limit, offset)
    """
    if not limit or limit <= 0:
        limit = default_limit
    limit = min(limit, max_limit)

    if not offset or offset < 0:
        offset = 0

    return limit, offset
