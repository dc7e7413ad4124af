"""Pagination helpers."""
from typing import Optional, Tuple

from eventsphere.config import get_settings


def clamp_page_size(page_size: Optional[int]) -> int:
    """
    Resolve the requested page size.

    Missing values fall back to DEFAULT_PAGE_SIZE and large ones are capped
    at MAX_PAGE_SIZE.
    """
    settings = get_settings()
    return min(page_size or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)


def calculate_pagination(
    total: int,
    page: int,
    page_size: int
) -> Tuple[int, int]:
    """
    Calculate pagination values.

    Args:
        total: Total number of items
        page: Current page number (1-indexed)
        page_size: Items per page

    Returns:
        Tuple of (offset, total_pages)

    Example:
        >>> calculate_pagination(total=25, page=2, page_size=10)
        (10, 3)
    """
    offset = (page - 1) * page_size
    total_pages = (total + page_size - 1) // page_size
    return offset, total_pages
