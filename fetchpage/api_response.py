from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fetchpage.window import PaginationWindow

Row = TypeVar("Row")


class PageResult(BaseModel, Generic[Row]):
    """
    One page of rows plus the pagination metadata.

    Serialized with camelCase keys (``model_dump(by_alias=True)``):

    {
        'rows': [...],     # the requested page of results
        'rowCount': 15,    # less than limit on the last page, 0 past it
        'total': 53,       # rows matching the query before pagination
        'limit': 15,       # the requested page size
        'page': 3,         # the requested page number
        'offset': 30       # calculated from page and limit when a page was requested
    }
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    rows: List[Row] = Field(default_factory=list)
    row_count: int = Field(0, description="Number of rows returned", examples=[15])
    total: int = Field(
        0, description="Total number of rows matching the query", examples=[53]
    )
    limit: int = Field(..., description="Requested page size", examples=[15])
    page: int = Field(..., description="Requested page, starting at 1", examples=[3])
    offset: int = Field(..., description="Offset of the first row", examples=[30])

    @classmethod
    def from_window(cls, window: PaginationWindow, rows: list, total: int) -> "PageResult":
        return cls(
            rows=rows,
            row_count=len(rows),
            total=total,
            limit=window.limit,
            page=window.page,
            offset=window.offset,
        )

    @property
    def page_count(self) -> int:
        """number of pages needed to show all `total` rows"""
        return -(-self.total // self.limit)

    @property
    def has_more(self) -> bool:
        return self.offset + self.row_count < self.total
