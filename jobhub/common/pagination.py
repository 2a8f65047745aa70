"""Offset pagination shared by the list endpoints."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from fastapi import Query
from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")

SORTABLE_FIELDS = ("created_at", "updated_at", "status", "job_number")


class PaginationParams:
    """Inject as a FastAPI dependency for any list endpoint."""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        page_size: int = Query(20, ge=1, le=100),
        sort_by: str = Query("created_at", pattern=f"^({'|'.join(SORTABLE_FIELDS)})$"),
        sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    ):
        self.page = page
        self.page_size = page_size
        self.sort_by = sort_by
        self.sort_order = sort_order

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def total_pages(self, total: int) -> int:
        return -(-total // self.page_size)


class PaginatedResponse(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int
    total_pages: int


async def paginate(
    db: AsyncSession,
    query: Select,
    params: PaginationParams,
    model: Any,
) -> tuple[list[Any], int]:
    """Return one page of ``query`` plus the unpaged row count.

    Rows are ordered by the requested field with the primary key as a
    tie-breaker so a page boundary never repeats or skips a row.
    """
    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0

    col = getattr(model, params.sort_by)
    if params.sort_order == "asc":
        query = query.order_by(col.asc(), model.id.asc())
    else:
        query = query.order_by(col.desc(), model.id.desc())

    result = await db.execute(query.offset(params.offset).limit(params.page_size))
    return list(result.scalars().all()), total
