"""Pagination utilities for list endpoints."""

from dataclasses import dataclass

from fastapi import Query
from sqlalchemy.orm import Query as SQLAlchemyQuery


# Pagination limits
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass
class PaginationParams:
    """Pagination parameters from query string."""
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def clamp_pagination(
    page: int | str | None,
    limit: int | str | None,
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> PaginationParams:
    """Coerce loose page/limit input into a valid window (never raises)."""
    try:
        safe_limit = int(limit) if limit is not None else default_limit
    except (TypeError, ValueError):
        safe_limit = default_limit
    try:
        safe_page = int(page) if page is not None else DEFAULT_PAGE
    except (TypeError, ValueError):
        safe_page = DEFAULT_PAGE
    return PaginationParams(
        page=max(safe_page, 1),
        limit=min(max(safe_limit, 1), max_limit),
    )


def get_pagination(
    page: int = Query(DEFAULT_PAGE, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description=f"Items per page (max {MAX_LIMIT})"),
) -> PaginationParams:
    """
    Pagination dependency.

    Usage:
        @router.get("/items")
        def list_items(pagination: PaginationParams = Depends(get_pagination)):
            ...
    """
    return PaginationParams(page=page, limit=limit)


def page_count(total: int, limit: int) -> int:
    return (total + limit - 1) // limit if limit > 0 else 0


def paginate_query(query: SQLAlchemyQuery, pagination: PaginationParams) -> tuple[list, int]:
    """
    Apply pagination to a SQLAlchemy query.

    Returns:
        (items, total_count)
    """
    total = query.order_by(None).count()
    items = query.offset(pagination.offset).limit(pagination.limit).all()
    return items, total
