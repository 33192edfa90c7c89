import math

MAX_PAGE_SIZE = 50


def calculate_pagination(page: int = 1, limit: int = 10) -> tuple[int, int]:
    """(skip, take) for a 1-based page."""
    return (page - 1) * limit, limit


def pagination_meta(page: int, limit: int, total: int) -> dict:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }
