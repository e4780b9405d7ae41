"""Domain models for paginated results."""

from dataclasses import dataclass, field
from typing import Generic, List, TypeVar

from pydantic import Field

from fetchkit.domain.models.api_model import ApiModel

T = TypeVar("T")


@dataclass
class PagedResult(Generic[T]):
    """Ordered items of one page plus the total number of items available.

    total is never smaller than the number of items returned.
    """
    items: List[T] = field(default_factory=list)
    total: int = 0

    def __post_init__(self) -> None:
        if self.total < len(self.items):
            self.total = len(self.items)

    def __len__(self) -> int:
        return len(self.items)


class Page(ApiModel, Generic[T]):
    """Typed page envelope for APIs whose response shape is known.

    Passing ``Page[Item]`` (or a subclass) as ``page_shape`` to
    ``ApiClient.get_paged`` skips heuristic discovery entirely.
    """

    items: List[T] = Field(default_factory=list)
    total: int = 0

    def to_result(self) -> PagedResult[T]:
        return PagedResult(items=list(self.items), total=self.total)
