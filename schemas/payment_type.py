from pydantic import BaseModel, Field
from typing import List, Optional

from schemas.common import PageMeta


class PaymentTypeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    icon: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = True


class PaymentTypeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    icon: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None


class PaymentTypeOut(BaseModel):
    id: int
    name: str
    slug: str
    icon: Optional[str]
    is_active: bool

    class Config:
        from_attributes = True


class PaymentTypePage(BaseModel):
    data: List[PaymentTypeOut]
    meta: PageMeta
