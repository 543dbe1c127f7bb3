import math

from fastapi import Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from core.config import settings


class PageParams:
    """Query parameters shared by every paginated listing."""

    def __init__(
        self,
        page: int = Query(default=1, ge=1),
        per_page: int | None = Query(default=None, ge=1),
    ):
        self.page = page
        self.per_page = min(per_page or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)


def paginate(db: Session, stmt: Select, params: PageParams) -> dict:
    total = db.execute(select(func.count()).select_from(stmt.order_by(None).subquery())).scalar_one()
    items = db.execute(
        stmt.offset((params.page - 1) * params.per_page).limit(params.per_page)
    ).scalars().all()
    return {
        "data": items,
        "meta": {
            "current_page": params.page,
            "total_page": max(math.ceil(total / params.per_page), 1),
            "per_page": params.per_page,
            "total": total,
        },
    }
