from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field, model_validator
from typing import List, Optional

from schemas.common import PageMeta


class OrderCreate(BaseModel):
    subtotal: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    discount: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    delivery_fee: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    service_fee: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    order_note: Optional[str] = Field(default=None, max_length=255)

    @model_validator(mode="after")
    def check_total(self):
        if self.discount > self.subtotal:
            raise ValueError("discount cannot exceed subtotal")
        if self.total <= 0:
            raise ValueError("order total must be greater than 0")
        return self

    @property
    def total(self) -> Decimal:
        return self.subtotal - self.discount + self.delivery_fee + self.service_fee


class OrderOut(BaseModel):
    id: int
    user_id: int
    subtotal: float
    discount: float
    delivery_fee: float
    service_fee: float
    total: float
    is_paid: bool
    order_note: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class OrderDetailOut(OrderOut):
    paid_amount: float
    remaining_balance: float


class OrderPage(BaseModel):
    data: List[OrderOut]
    meta: PageMeta
