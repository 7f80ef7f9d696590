"""
Pagination and sorting for list endpoints.
"""

import math
from dataclasses import dataclass
from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel
from sqlmodel.sql.expression import SelectOfScalar

from taskhive.exceptions import ValidationError

T = TypeVar("T")

DEFAULT_SORT = "-created_at"
MAX_LIMIT = 100


@dataclass
class PageResult(Generic[T]):
    items: Sequence[T]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def envelope(self, data: list[Any]) -> dict[str, Any]:
        """Build the paginated response body around already-serialized items."""
        return {
            "success": True,
            "count": len(data),
            "total": self.total,
            "pagination": {"page": self.page, "limit": self.limit, "pages": self.pages},
            "data": data,
        }


def apply_sort(query: SelectOfScalar, model: type[SQLModel], sort: str | None) -> SelectOfScalar:
    """
    Order a query by ``sort``: a column name, prefixed with '-' for descending.

    Raises:
        ValidationError: The column does not exist on the model.
    """
    sort = sort or DEFAULT_SORT
    descending = sort.startswith("-")
    field_name = sort.lstrip("-")
    columns = model.__table__.c
    if field_name not in columns:
        raise ValidationError(
            f"Cannot sort by '{field_name}'",
            details=[{"loc": ["query", "sort"], "msg": f"Unknown field '{field_name}'", "type": "value_error"}],
        )
    column = columns[field_name]
    return query.order_by(column.desc() if descending else column.asc())


async def paginate(
    session: AsyncSession,
    query: SelectOfScalar,
    page: int,
    limit: int,
) -> PageResult:
    """Run a filtered query for one 1-based page and count the full result."""
    if page < 1 or not 1 <= limit <= MAX_LIMIT:
        raise ValidationError("Page must be >= 1 and limit between 1 and 100")

    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await session.execute(count_query)).scalar_one()

    result = await session.execute(query.offset((page - 1) * limit).limit(limit))
    items = list(result.scalars().all())
    return PageResult(items=items, total=total, page=page, limit=limit)
