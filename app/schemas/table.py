from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class TableStatus(str, Enum):
    available = "available"
    occupied = "occupied"
    reserved = "reserved"


class TableBase(BaseModel):
    table_number: int = Field(..., ge=1)
    capacity: int = Field(2, ge=1)
    status: TableStatus = TableStatus.available


class TableCreate(TableBase):
    restaurant_id: Optional[str] = None


class TableUpdate(BaseModel):
    table_number: Optional[int] = Field(None, ge=1)
    capacity: Optional[int] = Field(None, ge=1)
    status: Optional[TableStatus] = None


class TableRead(TableBase):
    id: str
    restaurant_id: str
    created_at: Optional[datetime] = None
