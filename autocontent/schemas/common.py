"""Response envelope and pagination metadata shared by every endpoint."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")

SUCCESS = "SUCCESS"


class BaseResponse(BaseModel, Generic[T]):
    """``{"error_code": ..., "error_message": ..., "data": ...}``"""

    error_code: str = SUCCESS
    error_message: str | None = None
    data: T | None = None

    @classmethod
    def ok(cls, data: T | None = None, message: str = "Success") -> BaseResponse[T]:
        return cls(error_code=SUCCESS, error_message=message, data=data)


class PaginationMetadata(BaseModel):
    page: int
    size: int
    total_elements: int
    total_pages: int
    first: bool
    last: bool
    has_next: bool
    has_previous: bool
    number_of_elements: int

    @classmethod
    def of(cls, page: int, size: int, total_elements: int, number_of_elements: int) -> PaginationMetadata:
        total_pages = (total_elements + size - 1) // size if size > 0 else 0
        return cls(
            page=page,
            size=size,
            total_elements=total_elements,
            total_pages=total_pages,
            first=page == 0,
            last=page >= total_pages - 1,
            has_next=page + 1 < total_pages,
            has_previous=page > 0,
            number_of_elements=number_of_elements,
        )
