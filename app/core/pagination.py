"""
Pagination helpers for SQLAlchemy select queries.

Routes take a ``PaginationParams`` through ``get_pagination_params`` and
services hand their un-limited query to ``Paginator.paginate``.
"""

from math import ceil
from typing import Callable, Generic, List, Optional, TypeVar
from fastapi import Query
from pydantic import BaseModel, Field
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from app.config.config import settings


T = TypeVar("T")


class PaginationParams(BaseModel):
    """Pagination parameters for API requests."""

    page: int = Field(default=1, ge=1, description="Page number (starts at 1)")
    page_size: int = Field(
        default=settings.DEFAULT_PAGE_SIZE,
        ge=1,
        le=settings.MAX_PAGE_SIZE,
        description="Items per page",
    )

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


class PageInfo(BaseModel):
    """Pagination metadata."""

    total_items: int = Field(description="Total number of items")
    total_pages: int = Field(description="Total number of pages")
    current_page: int = Field(description="Current page number")
    page_size: int = Field(description="Items per page")
    has_next: bool = Field(description="Whether there is a next page")
    has_previous: bool = Field(description="Whether there is a previous page")
    next_page: Optional[int] = Field(default=None, description="Next page number")
    previous_page: Optional[int] = Field(
        default=None, description="Previous page number"
    )


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated response wrapper."""

    items: List[T] = Field(description="List of items for current page")
    page_info: PageInfo = Field(description="Pagination metadata")

    model_config = {"from_attributes": True}


class Paginator:
    """Runs count and page queries for a select statement."""

    @staticmethod
    async def paginate(
        db: AsyncSession,
        query: Select,
        params: PaginationParams,
        schema: Optional[type[BaseModel]] = None,
        transform: Optional[Callable] = None,
    ) -> PaginatedResponse:
        """
        Paginate a SQLAlchemy query.

        Args:
            db: Database session
            query: Ordered select query without limit/offset
            params: Pagination parameters
            schema: Optional Pydantic schema to validate items with
            transform: Optional callable applied to each ORM row instead
                of ``schema``

        Returns:
            PaginatedResponse: Page of items with metadata

        Example:
            >>> query = select(PaymentRecord).order_by(PaymentRecord.created_at.desc())
            >>> params = PaginationParams(page=2, page_size=10)
            >>> page = await Paginator.paginate(db, query, params, PaymentRecordSchema)
        """
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total_items = (await db.execute(count_query)).scalar() or 0

        result = await db.execute(query.offset(params.skip).limit(params.limit))
        items = list(result.scalars().all())

        if transform is not None:
            items = [transform(item) for item in items]
        elif schema is not None:
            items = [
                schema.model_validate(item, from_attributes=True) for item in items
            ]

        return PaginatedResponse(
            items=items,
            page_info=Paginator.create_page_info(
                total_items, params.page, params.page_size
            ),
        )

    @staticmethod
    def create_page_info(total_items: int, page: int, page_size: int) -> PageInfo:
        total_pages = ceil(total_items / page_size) if total_items > 0 else 0
        has_next = page < total_pages
        has_previous = page > 1

        return PageInfo(
            total_items=total_items,
            total_pages=total_pages,
            current_page=page,
            page_size=page_size,
            has_next=has_next,
            has_previous=has_previous,
            next_page=page + 1 if has_next else None,
            previous_page=page - 1 if has_previous else None,
        )


def get_pagination_params(
    page: int = Query(1, ge=1),
    page_size: int = Query(
        settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE
    ),
) -> PaginationParams:
    """
    Dependency for pagination parameters.

    Usage in route:
        @router.get("/payments/eligible")
        async def list_eligible(
            pagination: PaginationParams = Depends(get_pagination_params)
        ):
            ...
    """
    return PaginationParams(page=page, page_size=page_size)
