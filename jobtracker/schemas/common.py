from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Any, ClassVar, Generic, Iterable, TypeVar

from fastapi import Query
from pydantic import AfterValidator, BaseModel

from jobtracker.config import settings
from jobtracker.core.clock import as_utc

T = TypeVar("T")

# Naive input is taken as UTC; aware input is converted to UTC.
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


def one_of(value: Any, allowed: Iterable[str], field: str) -> Any:
    if value is not None and value not in allowed:
        raise ValueError(f"{field} must be one of: {', '.join(allowed)}")
    return value


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: T | None = None
    errors: list | dict | None = None


class Page(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    limit: int
    pages: int


class RecordPayload(BaseModel):
    """Request body that maps onto ORM columns. Nested models land in JSON columns."""

    json_fields: ClassVar[frozenset[str]] = frozenset()
    non_column_fields: ClassVar[frozenset[str]] = frozenset()

    def to_record_fields(self) -> dict:
        plain = self.model_dump(exclude_unset=True, exclude=set(self.non_column_fields))
        as_json = self.model_dump(mode="json", include=set(self.json_fields) & set(plain))
        return {key: (as_json[key] if key in self.json_fields else value) for key, value in plain.items()}


@dataclass
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def wrap(self, items: list, total: int) -> dict:
        pages = (total + self.limit - 1) // self.limit if self.limit else 0
        return {"items": items, "total": total, "page": self.page, "limit": self.limit, "pages": pages}


def pagination(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
) -> PageParams:
    """Page/limit query params; limit is clamped to the configured maximum."""
    limit = min(limit or settings.default_page_size, settings.max_page_size)
    return PageParams(page=page, limit=limit)


def ok(data: Any = None, message: str | None = None) -> dict:
    return {"success": True, "message": message, "data": data}
