from sqlalchemy import Column, String, Integer, Numeric, Boolean, ForeignKey, Text, DateTime, Index
from datetime import datetime
from app.models.base import Base
import uuid


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    category_id = Column(String, ForeignKey("categories.id"), nullable=False)

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    image_url = Column(String, nullable=True)  # opaque blob store URL

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_menu_items_category", "category_id"),
    )


class MenuItemVariant(Base):
    __tablename__ = "menu_item_variants"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    menu_item_id = Column(String, ForeignKey("menu_items.id"), nullable=False)

    name = Column(String, nullable=False)
    additional_price = Column(Numeric(10, 2), nullable=False, default=0)
    image_url = Column(String, nullable=True)
    display_order = Column(Integer, nullable=False, default=0)

    # Who last saved the variant list (explicit caller id, never ambient)
    user_id = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_variants_item_order", "menu_item_id", "display_order"),
    )
