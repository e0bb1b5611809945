import math
from dataclasses import dataclass
from typing import Generic, TypeVar

from hotel_booking.services.errors import ErrorKind, ServiceError

T = TypeVar("T")

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class Page(Generic[T]):
    """One zero-indexed page of a larger, stably ordered listing."""

    items: list[T]
    total_count: int
    page_index: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @property
    def has_previous(self) -> bool:
        return self.page_index > 0

    @property
    def has_next(self) -> bool:
        return self.page_index + 1 < self.total_pages


def check_paging(page_index, page_size) -> tuple[int, int]:
    if isinstance(page_index, bool) or isinstance(page_size, bool) \
            or not isinstance(page_index, int) or not isinstance(page_size, int):
        raise ServiceError(ErrorKind.INVALID_INPUT, "page index and page size must be integers")
    if page_index < 0 or page_size <= 0 or page_size > MAX_PAGE_SIZE:
        raise ServiceError(ErrorKind.INVALID_INPUT, f"page index must be >= 0 and page size between 1 and {MAX_PAGE_SIZE}")
    return page_index, page_size
