from typing import Optional
from datetime import datetime

from pydantic import BaseModel, Field


class ReorderReceive(BaseModel):
    """Actual quantity delivered; defaults to the requested quantity."""
    received_quantity: Optional[int] = Field(None, ge=1)


class ReorderCancel(BaseModel):
    reason: Optional[str] = None


class ReorderRequestResponse(BaseModel):
    id: int
    medicine_id: int
    medicine_name: str
    current_stock: int
    reorder_threshold: int
    requested_quantity: int
    received_quantity: Optional[int] = None
    status: str
    requested_by: Optional[int] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    ordered_at: Optional[datetime] = None
    received_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
