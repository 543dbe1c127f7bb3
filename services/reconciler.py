"""Settle an order by recording the payment that covers its remaining balance.

All reads that decide the outcome happen after the order row is locked, in
the same transaction as the writes, so concurrent attempts on one order are
serialized by the database and at most one of them can settle it. Attempts on
different orders never wait on each other.

Only full settlement is supported: the recorded amount is always the whole
remaining balance.
"""
import logging
from typing import Optional

from sqlalchemy import text, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from core.config import settings
from core.errors import (
    AlreadySettled,
    AppError,
    DuplicateReference,
    NoRemainingBalance,
    NotFound,
    StorageUnavailable,
    Timeout,
    Unauthorized,
)
from models.order import Order
from models.payment import Payment
from services.ledger import lock_order, paid_amount, to_decimal
from services.validation import validate_payment_request

logger = logging.getLogger(__name__)

# lock_not_available, query_canceled
_PG_LOCK_TIMEOUT_CODES = {"55P03", "57014"}


def _set_lock_timeout(db: Session) -> None:
    if db.get_bind().dialect.name == "postgresql":
        timeout_ms = int(settings.LOCK_TIMEOUT_SECONDS * 1000)
        db.execute(text(f"SET LOCAL lock_timeout = '{timeout_ms}ms'"))


def _is_lock_timeout(exc: OperationalError) -> bool:
    orig = exc.orig
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate in _PG_LOCK_TIMEOUT_CODES:
        return True
    return "database is locked" in str(orig)


def reconcile_payment(
    db: Session,
    order_id: int,
    payer_id: int,
    payment_type_id: int,
    transaction_id: Optional[str] = None,
) -> Payment:
    """Record a payment for the full remaining balance and mark the order paid.

    Raises an ``AppError`` subclass on every failure; nothing is written unless
    the call returns.
    """
    try:
        validate_payment_request(db, order_id, payment_type_id, transaction_id)
        _set_lock_timeout(db)

        order = lock_order(db, order_id)
        if order is None:
            raise NotFound("Order not found", errors={"order_id": ["The selected order does not exist."]})
        if order.user_id != payer_id:
            raise Unauthorized()
        if order.is_paid:
            raise AlreadySettled()

        remaining = to_decimal(order.total) - paid_amount(db, order.id)
        if remaining <= 0:
            logger.warning(
                "Order %s is unpaid but has no remaining balance (total=%s)", order.id, order.total
            )
            raise NoRemainingBalance()

        payment = Payment(
            order_id=order.id,
            user_id=payer_id,
            payment_type_id=payment_type_id,
            amount=remaining,
            transaction_id=transaction_id,
        )
        db.add(payment)
        db.flush()

        orders = Order.__table__
        settled = db.execute(
            update(orders)
            .where(orders.c.id == order.id, orders.c.is_paid.is_(False))
            .values(is_paid=True)
        )
        if settled.rowcount != 1:
            raise AlreadySettled()
        db.expire(order, ["is_paid", "updated_at"])

        db.commit()
    except AppError as exc:
        db.rollback()
        logger.info("Payment for order %s rejected: %s", order_id, exc.code)
        raise
    except IntegrityError as exc:
        db.rollback()
        if "transaction_id" in str(exc.orig):
            logger.info("Payment for order %s rejected: duplicate transaction id", order_id)
            raise DuplicateReference(
                errors={"transaction_id": ["The transaction id has already been used."]}
            ) from exc
        # A referenced row vanished between validation and insert
        logger.warning("Payment for order %s rejected: %s", order_id, exc.orig)
        raise NotFound(
            "Referenced record not found",
            errors={"payment_type_id": ["The selected payment type does not exist."]},
        ) from exc
    except OperationalError as exc:
        db.rollback()
        if _is_lock_timeout(exc):
            logger.warning("Timed out waiting for the lock on order %s", order_id)
            raise Timeout() from exc
        logger.exception("Storage failure while settling order %s", order_id)
        raise StorageUnavailable() from exc
    except DBAPIError as exc:
        db.rollback()
        logger.exception("Storage failure while settling order %s", order_id)
        raise StorageUnavailable() from exc

    logger.info(
        "Order %s settled by user %s: payment %s for %s", order_id, payer_id, payment.id, payment.amount
    )
    return payment
