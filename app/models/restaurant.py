from sqlalchemy import Column, String, DateTime, Index
from datetime import datetime
from app.models.base import Base
import uuid


class Restaurant(Base):
    """Tenant boundary: every catalog and order row belongs to one restaurant."""
    __tablename__ = "restaurants"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    owner_name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    user_id = Column(String, nullable=False)  # identity provider's user id
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_restaurants_user", "user_id"),
    )
