from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from datetime import datetime


# ---------- Category ----------
class CategoryBase(BaseModel):
    name: str
    description: Optional[str] = None
    display_order: int = 0


class CategoryCreate(CategoryBase):
    restaurant_id: Optional[str] = None  # filled from the caller's restaurant by the API


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    display_order: Optional[int] = None


class CategoryRead(CategoryBase):
    id: str
    restaurant_id: str
    created_at: Optional[datetime] = None


# ---------- Variant ----------
class VariantIn(BaseModel):
    name: str
    additional_price: Decimal = Decimal("0")
    image_url: Optional[str] = None
    addon_groups: List[str] = []  # add-on group ids, in display order


class VariantCreate(VariantIn):
    menu_item_id: str
    display_order: int = 0


class VariantUpdate(BaseModel):
    name: Optional[str] = None
    additional_price: Optional[Decimal] = None
    image_url: Optional[str] = None
    display_order: Optional[int] = None


class VariantRead(VariantIn):
    id: str
    menu_item_id: str
    display_order: int
    user_id: Optional[str] = None


# ---------- Menu Item ----------
class MenuItemBase(BaseModel):
    name: str
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    is_available: bool = True
    image_url: Optional[str] = None


class MenuItemCreate(MenuItemBase):
    category_id: str


class MenuItemUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    is_available: Optional[bool] = None
    image_url: Optional[str] = None
    category_id: Optional[str] = None


class MenuItemRead(MenuItemBase):
    id: str
    category_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    variants: List[VariantRead] = []


# ---------- Request bodies ----------
class VariantListIn(BaseModel):
    variants: List[VariantIn]


class AddOnGroupLinksIn(BaseModel):
    addon_group_ids: List[str]


class AvailabilityIn(BaseModel):
    is_available: bool
