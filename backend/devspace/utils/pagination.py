import math
from typing import Dict

from fastapi import Query
from sqlalchemy.orm import Query as SAQuery

from devspace.errors import APIError

MAX_LIMIT = 100


class Pagination:
    """`page`/`limit` query parameters; use as a dependency via Pagination.depends(default_limit)"""

    def __init__(self, page: int, limit: int):
        self.page = page
        self.limit = limit

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def depends(cls, default_limit: int):
        def dependency(
            page: int = Query(1, ge=1),
            limit: int = Query(default_limit, ge=1, le=MAX_LIMIT),
        ):
            return cls(page, limit)
        return dependency

    def apply(self, query: SAQuery):
        """Run `query` for this page; returns (items, total)"""
        total = query.order_by(None).count()
        items = query.offset(self.skip).limit(self.limit).all()
        return items, total

    def meta(self, total: int, total_key: str = "total_items") -> dict:
        total_pages = math.ceil(total / self.limit)
        return {
            "current_page": self.page,
            "total_pages": total_pages,
            total_key: total,
            "has_next": self.page < total_pages,
            "has_prev": self.page > 1,
        }


def sort_clause(sort: str, columns: Dict[str, object]):
    """
    Translate "field" / "-field" into an ORDER BY clause.
    `columns` maps accepted field names to model columns.
    """
    descending = sort.startswith("-")
    field = sort.lstrip("-")
    column = columns.get(field)
    if column is None:
        raise APIError(
            400, "Invalid Sort",
            f"Cannot sort by '{field}'. Allowed fields: {', '.join(sorted(columns))}."
        )
    return column.desc() if descending else column.asc()
