import math
from enum import Enum
from typing import Generic, Optional, TypeVar
from pydantic import BaseModel, Field

from catalog_orders.domain.exceptions import (
    DomainException, NotFoundError, ValidationError, DuplicateError
)

T = TypeVar("T")

MAX_PAGE_SIZE = 100


class ErrorType(str, Enum):
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    DUPLICATE = "duplicate"
    UNEXPECTED = "unexpected"


class Result(BaseModel, Generic[T]):
    """Outcome of a use case; expected failures are reported here instead of raised"""
    success: bool
    message: str
    data: Optional[T] = None
    errors: list[str] = Field(default_factory=list)
    error_type: Optional[ErrorType] = None

    @classmethod
    def ok(cls, data=None, message: str = "Operation completed successfully") -> "Result":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, errors: list[str] | None = None, error_type: ErrorType = ErrorType.BUSINESS_RULE) -> "Result":
        return cls(success=False, message=message, errors=errors or [], error_type=error_type)

    @classmethod
    def not_found(cls, message: str) -> "Result":
        return cls.fail(message, error_type=ErrorType.NOT_FOUND)

    @classmethod
    def from_exception(cls, exc: DomainException) -> "Result":
        if isinstance(exc, NotFoundError):
            return cls.fail(str(exc), error_type=ErrorType.NOT_FOUND)
        if isinstance(exc, ValidationError):
            return cls.fail(str(exc), exc.errors, ErrorType.VALIDATION)
        if isinstance(exc, DuplicateError):
            return cls.fail(str(exc), error_type=ErrorType.DUPLICATE)
        return cls.fail(str(exc), error_type=ErrorType.BUSINESS_RULE)

    @classmethod
    def unexpected(cls, action: str) -> "Result":
        return cls.fail(f"An error occurred while {action}", error_type=ErrorType.UNEXPECTED)


class PagedResult(BaseModel, Generic[T]):
    items: list[T]
    page_number: int
    page_size: int
    total_count: int
    total_pages: int

    @classmethod
    def of(cls, items: list, page_number: int, page_size: int, total_count: int) -> "PagedResult":
        return cls(
            items=items,
            page_number=page_number,
            page_size=page_size,
            total_count=total_count,
            total_pages=math.ceil(total_count / page_size)
        )


def check_paging(page_number: int, page_size: int) -> Optional[Result]:
    """Failed result for out-of-range paging arguments, None when they are usable"""
    if page_number < 1:
        return Result.fail("Page number must be greater than 0", error_type=ErrorType.VALIDATION)
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        return Result.fail(f"Page size must be between 1 and {MAX_PAGE_SIZE}", error_type=ErrorType.VALIDATION)
    return None
