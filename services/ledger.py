"""Read access to an order's monetary state."""
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models.order import Order
from models.payment import Payment


def to_decimal(value: float | int | Decimal | None) -> Decimal:
    if value is None:
        return Decimal("0.00")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def get_order(db: Session, order_id: int) -> Order | None:
    return db.get(Order, order_id)


def lock_order(db: Session, order_id: int) -> Order | None:
    """Load the order with an exclusive row lock held until the transaction ends.

    ``populate_existing`` refreshes an instance already in the identity map so
    ``is_paid`` reflects whatever the previous lock holder committed.
    """
    stmt = (
        select(Order)
        .where(Order.id == order_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return db.execute(stmt).scalar_one_or_none()


def paid_amount(db: Session, order_id: int) -> Decimal:
    total = db.execute(
        select(func.coalesce(func.sum(Payment.amount), 0)).where(Payment.order_id == order_id)
    ).scalar_one()
    return to_decimal(total)


def remaining_balance(db: Session, order: Order) -> Decimal:
    return to_decimal(order.total) - paid_amount(db, order.id)
