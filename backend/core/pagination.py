import math

from sqlalchemy.orm import Query

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def paginate(query: Query, page: int, limit: int) -> tuple[list, int]:
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, total


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0
