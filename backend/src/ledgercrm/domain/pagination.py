"""Pagination parameters shared by the list endpoints."""

from ledgercrm.config import get_settings
from ledgercrm.domain.entities import Page
from ledgercrm.shared.exceptions import InvalidQueryParameterError

SORT_ORDERS = ("asc", "desc")


def make_page(
    limit: int | None = None,
    page: int | None = None,
    sort_order: str | None = None,
    *,
    max_limit: int | None = None,
) -> Page:
    """Validate raw pagination input. Pages are 1-based."""
    settings = get_settings()
    max_limit = max_limit or settings.max_page_limit
    limit = settings.default_page_limit if limit is None else limit
    page = 1 if page is None else page
    sort_order = (sort_order or "asc").lower()

    if limit < 1 or limit > max_limit:
        raise InvalidQueryParameterError("limit", f"must be between 1 and {max_limit}")
    if page < 1:
        raise InvalidQueryParameterError("page", "must be 1 or greater")
    if sort_order not in SORT_ORDERS:
        raise InvalidQueryParameterError("sort_order", "must be 'asc' or 'desc'")
    return Page(limit=limit, page=page, sort_order=sort_order)
