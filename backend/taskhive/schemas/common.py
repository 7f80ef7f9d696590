from datetime import datetime
from typing import Annotated, Generic, TypeVar

from pydantic import AfterValidator, BaseModel

from taskhive.models.types import as_utc

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Success envelope shared by every endpoint."""
    success: bool = True
    data: T


class Pagination(BaseModel):
    page: int
    limit: int
    pages: int


class Page(BaseModel, Generic[T]):
    """Envelope for paginated listings."""
    success: bool = True
    count: int
    total: int
    pagination: Pagination
    data: list[T]


class Empty(BaseModel):
    """Body of delete responses."""


class Listing(BaseModel, Generic[T]):
    """Envelope for unpaginated listings."""
    success: bool = True
    count: int
    data: list[T]


UTCDatetime = Annotated[datetime, AfterValidator(as_utc)]
