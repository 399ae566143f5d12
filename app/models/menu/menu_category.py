from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Text, Index
from datetime import datetime
from app.models.base import Base
import uuid


class MenuCategory(Base):
    __tablename__ = "categories"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    restaurant_id = Column(String, ForeignKey("restaurants.id"), nullable=False)

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    display_order = Column(Integer, nullable=False, default=0)  # sort key only, not unique
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_categories_restaurant", "restaurant_id", "display_order"),
    )
