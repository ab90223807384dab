"""Page, limit and offset helpers for list endpoints."""

__all__ = ["DEFAULT_PAGE_ITEMS", "page", "limit", "offset"]

DEFAULT_PAGE_ITEMS = 50


def _page_number(val: int) -> int:
    return 1 if val <= 0 else val


def page(val: int) -> int:
    """Return the page number, at least 1."""
    return _page_number(val)


def limit(val: int) -> int:
    """Return the page size, falling back to the default."""
    return DEFAULT_PAGE_ITEMS if val <= 0 else val


def offset(page: int, page_size: int) -> int:
    """Return the number of items before the given page."""
    return (_page_number(page) - 1) * limit(page_size)