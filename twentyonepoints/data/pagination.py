import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, List, Mapping, Optional, TypeVar

from twentyonepoints.data.entity import INTEGER_MAX
from twentyonepoints.exceptions import InvalidPageRequestException

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 2000


class Direction(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class Order:
    property: str
    direction: Direction = Direction.ASC

    @property
    def ascending(self) -> bool:
        return self.direction == Direction.ASC

    def __str__(self) -> str:
        return f"{self.property},{self.direction.value}"


@dataclass(frozen=True)
class Pageable:
    """
    A request for one page of results.

    ``size`` of ``None`` means unpaged: every element in a single page.
    """

    page: int = 0
    size: Optional[int] = DEFAULT_PAGE_SIZE
    sort: List[Order] = field(default_factory=list)

    @classmethod
    def unpaged(cls, sort: Optional[List[Order]] = None) -> "Pageable":
        return cls(page=0, size=None, sort=list(sort or []))

    @property
    def is_paged(self) -> bool:
        return self.size is not None

    @property
    def offset(self) -> int:
        return self.page * self.size if self.is_paged else 0

    def next(self) -> "Pageable":
        return Pageable(page=self.page + 1, size=self.size, sort=self.sort)

    @classmethod
    def from_query_params(
        cls,
        params: Mapping[str, Any],
        default_size: int = DEFAULT_PAGE_SIZE,
        max_size: int = MAX_PAGE_SIZE,
    ) -> "Pageable":
        """
        Build a pageable from ``page``, ``size`` and repeated ``sort`` params.

        ``sort`` values look like ``login,desc`` or ``login,firstName,asc``;
        the trailing direction applies to every listed property. Sizes above
        ``max_size`` are clamped.
        """
        page = _parse_int(params.get("page"), "page", default=0)
        if page < 0:
            raise InvalidPageRequestException("Page index must not be less than zero")

        size = _parse_int(params.get("size"), "size", default=default_size)
        if size < 1:
            raise InvalidPageRequestException("Page size must not be less than one")
        size = min(size, max_size)
        if page > INTEGER_MAX // size:
            raise InvalidPageRequestException(f"Page index {page} is out of range")

        if hasattr(params, "getlist"):
            raw_sorts = params.getlist("sort")
        else:
            raw_sort = params.get("sort")
            if raw_sort is None:
                raw_sorts = []
            elif isinstance(raw_sort, str):
                raw_sorts = [raw_sort]
            else:
                raw_sorts = list(raw_sort)

        orders: List[Order] = []
        for raw in raw_sorts:
            orders.extend(_parse_sort(raw))

        return cls(page=page, size=size, sort=orders)


def _parse_int(raw: Any, name: str, default: int) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise InvalidPageRequestException(
            f"Parameter '{name}' must be an integer, got {raw!r}"
        ) from None
    if value > INTEGER_MAX:
        raise InvalidPageRequestException(f"Parameter '{name}' is out of range: {raw!r}")
    return value


def _parse_sort(raw: str) -> List[Order]:
    parts = [p.strip() for p in raw.split(",") if p.strip()]
    if not parts:
        return []

    direction = Direction.ASC
    if parts[-1].lower() in (Direction.ASC.value, Direction.DESC.value):
        direction = Direction(parts.pop().lower())
        if not parts:
            raise InvalidPageRequestException(f"Sort '{raw}' names no property")

    for prop in parts:
        if not prop.replace("_", "").isalnum():
            raise InvalidPageRequestException(f"Invalid sort property '{prop}'")
    return [Order(prop, direction) for prop in parts]


@dataclass
class Page(Generic[T]):
    """A slice of a result set plus the total element count."""

    content: List[T]
    pageable: Pageable
    total_elements: int

    @property
    def number(self) -> int:
        return self.pageable.page

    @property
    def size(self) -> int:
        if self.pageable.is_paged:
            return self.pageable.size
        return len(self.content)

    @property
    def number_of_elements(self) -> int:
        return len(self.content)

    @property
    def total_pages(self) -> int:
        if not self.pageable.is_paged:
            return 1
        return math.ceil(self.total_elements / self.pageable.size)

    @property
    def has_next(self) -> bool:
        return self.number + 1 < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.number > 0

    @property
    def is_first(self) -> bool:
        return not self.has_previous

    @property
    def is_last(self) -> bool:
        return not self.has_next

    def map(self, converter: Callable[[T], R]) -> "Page[R]":
        return Page([converter(item) for item in self.content], self.pageable, self.total_elements)

    def __iter__(self):
        return iter(self.content)

    def __len__(self) -> int:
        return len(self.content)


def paginate(items: List[T], pageable: Pageable) -> Page[T]:
    """Slice an in-memory, already sorted list into a page."""
    total = len(items)
    if not pageable.is_paged:
        return Page(list(items), pageable, total)
    start = pageable.offset
    return Page(items[start : start + pageable.size], pageable, total)
