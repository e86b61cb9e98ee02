from typing import Generic, List, TypeVar
from pydantic import BaseModel
from sqlalchemy.orm import Query
from urban_transit.config import settings

T = TypeVar("T")

class PagedResponse(BaseModel, Generic[T]):
    content: List[T]
    page: int
    size: int
    total_elements: int
    total_pages: int
    first: bool
    last: bool

def clamp_page(page: int, size: int):
    """Keep page/size inside the configured limits"""
    page = max(page, 0)
    if size <= 0:
        size = settings.DEFAULT_PAGE_SIZE
    return page, min(size, settings.MAX_PAGE_SIZE)

def paginate(query: Query, page: int, size: int, transform=None) -> PagedResponse:
    """Run a count and an offset/limit query and wrap the result"""
    page, size = clamp_page(page, size)
    total = query.order_by(None).count()
    items = query.offset(page * size).limit(size).all()
    if transform is not None:
        items = [transform(item) for item in items]
    total_pages = (total + size - 1) // size if total else 0
    return PagedResponse(
        content=items,
        page=page,
        size=size,
        total_elements=total,
        total_pages=total_pages,
        first=page == 0,
        last=page >= total_pages - 1,
    )
