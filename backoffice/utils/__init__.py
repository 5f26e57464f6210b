"""Utility modules."""

from backoffice.utils.normalization import (
    blank_to_none,
    normalize_corporate_number,
    normalize_email,
    normalize_phone,
    normalize_postal_code,
)
from backoffice.utils.pagination import (
    PaginationParams,
    get_pagination,
    paginate_query,
)

__all__ = [
    # Normalization
    "blank_to_none",
    "normalize_corporate_number",
    "normalize_email",
    "normalize_phone",
    "normalize_postal_code",
    # Pagination
    "PaginationParams",
    "get_pagination",
    "paginate_query",
]
