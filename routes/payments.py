from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from core.db import get_db
from core.pagination import PageParams, paginate
from models.payment import Payment
from models.user import User
from schemas.payment import PaymentCreate, PaymentOut, PaymentPage
from security.dependencies import get_current_user
from services.reconciler import reconcile_payment

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/", response_model=PaymentOut, status_code=201)
def settle_order(
    data: PaymentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Pay the full remaining balance of one of the caller's orders."""
    return reconcile_payment(
        db,
        order_id=data.order_id,
        payer_id=current_user.id,
        payment_type_id=data.payment_type_id,
        transaction_id=data.transaction_id,
    )


@router.get("/", response_model=PaymentPage)
def list_payments(
    params: PageParams = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    stmt = (
        select(Payment)
        .where(Payment.user_id == current_user.id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
    )
    return paginate(db, stmt, params)
