from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional
from datetime import datetime


# ---------- Add-on Group ----------
class AddOnGroupBase(BaseModel):
    name: str
    description: Optional[str] = None
    is_required: bool = False
    max_selections: Optional[int] = Field(None, ge=1)


class AddOnGroupCreate(AddOnGroupBase):
    restaurant_id: Optional[str] = None


class AddOnGroupUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_required: Optional[bool] = None
    max_selections: Optional[int] = Field(None, ge=1)


class AddOnGroupRead(AddOnGroupBase):
    id: str
    restaurant_id: str
    created_at: Optional[datetime] = None
    item_count: int = 0


# ---------- Add-on ----------
class AddOnBase(BaseModel):
    name: str
    price: Decimal = Field(Decimal("0"), ge=0)
    is_available: bool = True


class AddOnCreate(AddOnBase):
    addon_group_id: str


class AddOnUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    is_available: Optional[bool] = None


class AddOnRead(AddOnBase):
    id: str
    addon_group_id: str
    created_at: Optional[datetime] = None
