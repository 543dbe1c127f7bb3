"""Referential checks for an incoming payment request.

Structural checks (types, ranges, lengths) are done by the pydantic request
schema; this module looks up the referenced rows. Every violated field is
collected before anything is raised so callers can report them all at once.
"""
from typing import Dict, List, Optional

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from core.errors import DuplicateReference, NotFound, ValidationFailed
from models.order import Order
from models.payment import Payment
from models.payment_type import PaymentType


def transaction_id_taken(db: Session, transaction_id: str) -> bool:
    return db.execute(select(exists().where(Payment.transaction_id == transaction_id))).scalar()


def validate_payment_request(
    db: Session, order_id: int, payment_type_id: int, transaction_id: Optional[str] = None
) -> None:
    """Raise the most fundamental error kind found, carrying every field message."""
    errors: Dict[str, List[str]] = {}
    missing = False
    unavailable = False

    if not db.execute(select(exists().where(Order.id == order_id))).scalar():
        errors["order_id"] = ["The selected order does not exist."]
        missing = True

    payment_type = db.get(PaymentType, payment_type_id)
    if payment_type is None:
        errors["payment_type_id"] = ["The selected payment type does not exist."]
        missing = True
    elif not payment_type.is_active:
        errors["payment_type_id"] = ["The selected payment type is not available."]
        unavailable = True

    if transaction_id is not None and transaction_id_taken(db, transaction_id):
        errors["transaction_id"] = ["The transaction id has already been used."]

    if missing:
        raise NotFound("Referenced order or payment type not found", errors=errors)
    if unavailable:
        raise ValidationFailed(errors=errors)
    if errors:
        raise DuplicateReference(errors=errors)
