from sqlalchemy import Column, String, Integer, Numeric, Boolean, ForeignKey, Text, DateTime, Index
from datetime import datetime
from app.models.base import Base
import uuid


class AddOnGroup(Base):
    __tablename__ = "addon_groups"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    restaurant_id = Column(String, ForeignKey("restaurants.id"), nullable=False)

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_required = Column(Boolean, nullable=False, default=False)
    max_selections = Column(Integer, nullable=True)  # None = unlimited
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_addon_groups_restaurant", "restaurant_id"),
    )


class AddOn(Base):
    __tablename__ = "addons"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    addon_group_id = Column(String, ForeignKey("addon_groups.id"), nullable=False)

    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    is_available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_addons_group", "addon_group_id"),
    )


class MenuItemAddOnGroup(Base):
    """Link table: add-on groups offered on a menu item."""
    __tablename__ = "menu_item_addon_groups"

    menu_item_id = Column(String, ForeignKey("menu_items.id"), primary_key=True)
    addon_group_id = Column(String, ForeignKey("addon_groups.id"), primary_key=True)
    position = Column(Integer, nullable=False, default=0)


class VariantAddOnGroup(Base):
    """
    Link table: add-on groups offered on a variant.

    Canonical form of the variant/group association. The old
    ``menu_item_variants.addon_groups`` array is folded into this table by
    the ``variant_addon_links`` migration.
    """
    __tablename__ = "menu_item_variant_addon_groups"

    variant_id = Column(String, ForeignKey("menu_item_variants.id"), primary_key=True)
    addon_group_id = Column(String, ForeignKey("addon_groups.id"), primary_key=True)
    position = Column(Integer, nullable=False, default=0)
