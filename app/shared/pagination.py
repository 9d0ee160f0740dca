"""List endpoint pagination shared by the domain routers"""

from typing import Literal

from fastapi import Query
from pydantic import BaseModel
from sqlalchemy.orm import Query as SAQuery


class PageParams(BaseModel):
    page: int = 1
    limit: int = 20
    sort_order: Literal["asc", "desc"] = "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort_order: Literal["asc", "desc"] = Query("desc"),
) -> PageParams:
    return PageParams(page=page, limit=limit, sort_order=sort_order)


def paginate(query: SAQuery, params: PageParams) -> tuple[list, int]:
    total = query.order_by(None).count()
    items = query.offset(params.offset).limit(params.limit).all()
    return items, total


def pagination_meta(params: PageParams, total: int) -> dict:
    return {
        "page": params.page,
        "limit": params.limit,
        "total": total,
        "hasMore": total > params.page * params.limit,
    }
