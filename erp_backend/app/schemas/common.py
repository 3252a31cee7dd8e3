"""
Shared schema pieces: money serialization and pagination envelopes.
"""

import math
from decimal import Decimal
from typing import Annotated, Generic, List, TypeVar

from pydantic import BaseModel, PlainSerializer

# Decimals internally, plain JSON numbers on the wire
Money = Annotated[Decimal, PlainSerializer(lambda v: float(v), return_type=float, when_used="json")]

T = TypeVar("T")


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class Page(BaseModel, Generic[T]):
    """Paginated list envelope: ``{items, pagination}``."""
    items: List[T]
    pagination: Pagination


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


class MessageResponse(BaseModel):
    message: str
