from fastapi import APIRouter, Depends, Path
from sqlalchemy import select
from sqlalchemy.orm import Session

from core.db import get_db
from core.errors import NotFound
from core.pagination import PageParams, paginate
from models.order import Order
from models.user import User
from schemas.common import MAX_ID
from schemas.order import OrderCreate, OrderDetailOut, OrderOut, OrderPage
from security.dependencies import get_current_user
from services.ledger import get_order as load_order, paid_amount, to_decimal

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/", response_model=OrderPage)
def list_orders(
    is_paid: bool | None = None,
    params: PageParams = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    stmt = select(Order).where(Order.user_id == current_user.id)
    if is_paid is not None:
        stmt = stmt.where(Order.is_paid.is_(is_paid))
    return paginate(db, stmt.order_by(Order.id.desc()), params)


@router.get("/{order_id}", response_model=OrderDetailOut)
def get_order(
    order_id: int = Path(gt=0, le=MAX_ID),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order = load_order(db, order_id)
    # Other users' orders are reported as missing
    if not order or order.user_id != current_user.id:
        raise NotFound("Order not found")
    paid = paid_amount(db, order.id)
    return OrderDetailOut(
        **OrderOut.model_validate(order).model_dump(),
        paid_amount=paid,
        remaining_balance=to_decimal(order.total) - paid,
    )


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(data: OrderCreate, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    order = Order(
        user_id=current_user.id,
        subtotal=data.subtotal,
        discount=data.discount,
        delivery_fee=data.delivery_fee,
        service_fee=data.service_fee,
        total=data.total,
        is_paid=False,
        order_note=data.order_note,
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    return order
