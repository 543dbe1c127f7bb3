from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

from schemas.common import MAX_ID, PageMeta


class PaymentCreate(BaseModel):
    order_id: int = Field(gt=0, le=MAX_ID)
    payment_type_id: int = Field(gt=0, le=MAX_ID)
    transaction_id: Optional[str] = Field(default=None, min_length=1, max_length=255)

    @field_validator("transaction_id", mode="before")
    @classmethod
    def strip_transaction_id(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value


class PaymentOut(BaseModel):
    id: int
    order_id: int
    user_id: int
    payment_type_id: int
    amount: float
    transaction_id: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentPage(BaseModel):
    data: List[PaymentOut]
    meta: PageMeta
