import re

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from core.db import get_db
from core.errors import NotFound, ValidationFailed
from core.pagination import PageParams, paginate
from models.payment import Payment
from models.payment_type import PaymentType
from models.user import User
from schemas.common import MAX_ID
from schemas.payment import PaymentOut, PaymentPage
from schemas.payment_type import PaymentTypeCreate, PaymentTypeOut, PaymentTypePage, PaymentTypeUpdate
from security.dependencies import require_admin

router = APIRouter(prefix="/admin", tags=["admin"])


def _slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _ensure_unique_name(db: Session, name: str, exclude_id: int | None = None) -> None:
    stmt = select(PaymentType.id).where(PaymentType.name == name)
    if exclude_id is not None:
        stmt = stmt.where(PaymentType.id != exclude_id)
    if db.execute(stmt).first():
        raise ValidationFailed(errors={"name": ["The name has already been taken."]})


def _load_payment_type(db: Session, payment_type_id: int) -> PaymentType:
    payment_type = db.get(PaymentType, payment_type_id)
    if not payment_type:
        raise NotFound("Payment type not found")
    return payment_type


@router.get("/payments", response_model=PaymentPage)
def list_payments(
    user_id: int | None = Query(default=None, gt=0, le=MAX_ID),
    order_id: int | None = Query(default=None, gt=0, le=MAX_ID),
    params: PageParams = Depends(),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    stmt = select(Payment)
    if user_id is not None:
        stmt = stmt.where(Payment.user_id == user_id)
    if order_id is not None:
        stmt = stmt.where(Payment.order_id == order_id)
    return paginate(db, stmt.order_by(Payment.created_at.desc(), Payment.id.desc()), params)


@router.get("/payments/{payment_id}", response_model=PaymentOut)
def get_payment(
    payment_id: int = Path(gt=0, le=MAX_ID),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    payment = db.get(Payment, payment_id)
    if not payment:
        raise NotFound("Payment not found")
    return payment


@router.get("/payment-types", response_model=PaymentTypePage)
def list_payment_types(
    search: str | None = None,
    is_active: bool | None = None,
    params: PageParams = Depends(),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Every payment type, including deactivated ones."""
    stmt = select(PaymentType)
    if search:
        stmt = stmt.where(PaymentType.name.ilike(f"%{search}%"))
    if is_active is not None:
        stmt = stmt.where(PaymentType.is_active.is_(is_active))
    return paginate(db, stmt.order_by(PaymentType.name), params)


@router.get("/payment-types/{payment_type_id}", response_model=PaymentTypeOut)
def get_payment_type(
    payment_type_id: int = Path(gt=0, le=MAX_ID),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return _load_payment_type(db, payment_type_id)


@router.post("/payment-types", response_model=PaymentTypeOut, status_code=201)
def create_payment_type(data: PaymentTypeCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    name = data.name.strip()
    _ensure_unique_name(db, name)
    payment_type = PaymentType(name=name, slug=_slugify(name), icon=data.icon, is_active=data.is_active)
    db.add(payment_type)
    db.commit()
    db.refresh(payment_type)
    return payment_type


@router.patch("/payment-types/{payment_type_id}", response_model=PaymentTypeOut)
def update_payment_type(
    data: PaymentTypeUpdate,
    payment_type_id: int = Path(gt=0, le=MAX_ID),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    payment_type = _load_payment_type(db, payment_type_id)

    # icon may be cleared; name and is_active may not
    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field == "icon"
    }
    if "name" in changes:
        changes["name"] = changes["name"].strip()
        _ensure_unique_name(db, changes["name"], exclude_id=payment_type.id)
        changes["slug"] = _slugify(changes["name"])
    for field, value in changes.items():
        setattr(payment_type, field, value)
    db.commit()
    db.refresh(payment_type)
    return payment_type


@router.delete("/payment-types/{payment_type_id}")
def delete_payment_type(
    payment_type_id: int = Path(gt=0, le=MAX_ID),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Delete a payment type that no payment refers to.

    Types with payments stay in place; deactivate them instead.
    """
    payment_type = _load_payment_type(db, payment_type_id)
    in_use = db.scalar(select(exists().where(Payment.payment_type_id == payment_type.id)))
    if in_use:
        raise ValidationFailed(
            "Payment type is in use",
            errors={"payment_type_id": ["The payment type has payments and cannot be deleted."]},
        )
    db.delete(payment_type)
    db.commit()
    return {"success": True, "message": "Payment type deleted"}
