"""Pagination utilities and models for API responses."""

from fastapi import Query
from pydantic import Field, computed_field

from truedope.shared.schemas import CamelModel

MAX_PAGE_SIZE = 100


class PaginationParams(CamelModel):
    """Validated page window for list queries.

    Built from query parameters by ``pagination_params``:
    ```python
    @router.get("/items")
    async def list_items(pagination: PaginationParams = Depends(pagination_params)):
        stmt = stmt.offset(pagination.skip).limit(pagination.limit)
    ```
    """

    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    page_size: int = Field(default=20, ge=1, le=MAX_PAGE_SIZE, description="Items per page")

    @property
    def skip(self) -> int:
        """Calculate skip/offset for database query."""
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


def pagination_params(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(20, ge=1, le=MAX_PAGE_SIZE, alias="pageSize", description="Items per page"),
) -> PaginationParams:
    return PaginationParams(page=page, page_size=page_size)


class PaginatedResponse[T](CamelModel):
    """Generic paginated response model."""

    items: list[T]
    total: int
    page: int
    page_size: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        """Calculate total pages."""
        return (self.total + self.page_size - 1) // self.page_size

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_next(self) -> bool:
        """Check if there's a next page."""
        return self.page < self.total_pages

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_previous(self) -> bool:
        """Check if there's a previous page."""
        return self.page > 1

    @classmethod
    def build(cls, items: list[T], total: int, pagination: PaginationParams) -> "PaginatedResponse[T]":
        return cls(items=items, total=total, page=pagination.page, page_size=pagination.page_size)


__all__ = ["PaginatedResponse", "PaginationParams", "pagination_params"]
