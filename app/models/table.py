from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Index
from datetime import datetime
from app.models.base import Base
import uuid


class DiningTable(Base):
    __tablename__ = "tables"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    restaurant_id = Column(String, ForeignKey("restaurants.id"), nullable=False)
    table_number = Column(Integer, nullable=False)
    capacity = Column(Integer, nullable=False, default=2)
    status = Column(String, nullable=False, default="available")  # available, occupied, reserved
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_tables_restaurant", "restaurant_id"),
    )
