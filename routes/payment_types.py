from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from core.db import get_db
from core.pagination import PageParams, paginate
from models.payment_type import PaymentType
from models.user import User
from schemas.payment_type import PaymentTypePage
from security.dependencies import get_current_user

router = APIRouter(prefix="/payment-types", tags=["payment types"])


@router.get("/", response_model=PaymentTypePage)
def list_payment_types(
    search: str | None = None,
    params: PageParams = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    stmt = select(PaymentType).where(PaymentType.is_active.is_(True))
    if search:
        stmt = stmt.where(PaymentType.name.ilike(f"%{search}%"))
    return paginate(db, stmt.order_by(PaymentType.name), params)
