from typing import Optional

from ..errors import InvalidFilterError
from ..models.data_models import (
    COURSE_LEVELS,
    COURSE_SORT_KEYS,
    MENTOR_SORT_KEYS,
    SORT_ORDERS,
    MentorSearchFilters,
    SearchFilters,
)


def require_id(value: Optional[str], name: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidFilterError(f"{name} must not be empty")
    return str(value).strip()


def validate_limit(limit: int, max_limit: int, name: str = "limit") -> int:
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise InvalidFilterError(f"{name} must be an integer, got {limit!r}")
    if limit <= 0:
        raise InvalidFilterError(f"{name} must be positive, got {limit}")
    if limit > max_limit:
        raise InvalidFilterError(f"{name} must be at most {max_limit}, got {limit}")
    return limit


def _validate_paging(page: int, limit: int, sort_by: str, sort_order: str, sort_keys, max_limit: int) -> None:
    validate_limit(limit, max_limit)
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise InvalidFilterError(f"page must be an integer >= 1, got {page!r}")
    if sort_by not in sort_keys:
        raise InvalidFilterError(f"unknown sort key {sort_by!r}; expected one of {list(sort_keys)}")
    if sort_order not in SORT_ORDERS:
        raise InvalidFilterError(f"unknown sort order {sort_order!r}; expected 'asc' or 'desc'")


def _validate_rating(min_rating: Optional[float]) -> None:
    if min_rating is not None and not 0 <= min_rating <= 5:
        raise InvalidFilterError(f"min_rating must be within [0, 5], got {min_rating}")


def validate_search_filters(filters: SearchFilters, max_limit: int) -> SearchFilters:
    _validate_paging(
        filters.page, filters.limit, filters.sort_by, filters.sort_order, COURSE_SORT_KEYS, max_limit
    )
    if filters.level is not None and filters.level not in COURSE_LEVELS:
        raise InvalidFilterError(f"unknown level {filters.level!r}")
    for name in ("min_price", "max_price"):
        value = getattr(filters, name)
        if value is not None and value < 0:
            raise InvalidFilterError(f"{name} must not be negative, got {value}")
    if (
        filters.min_price is not None
        and filters.max_price is not None
        and filters.min_price > filters.max_price
    ):
        raise InvalidFilterError("min_price must not exceed max_price")
    _validate_rating(filters.min_rating)
    return filters


def validate_mentor_filters(filters: MentorSearchFilters, max_limit: int) -> MentorSearchFilters:
    _validate_paging(
        filters.page, filters.limit, filters.sort_by, filters.sort_order, MENTOR_SORT_KEYS, max_limit
    )
    _validate_rating(filters.min_rating)
    if filters.min_experience is not None and filters.min_experience < 0:
        raise InvalidFilterError(f"min_experience must not be negative, got {filters.min_experience}")
    return filters
