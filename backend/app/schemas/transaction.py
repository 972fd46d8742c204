from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class TransactionRecord(BaseModel):
    id: int
    medicine_id: int
    medicine_name: str
    type: str
    quantity: int
    previous_stock: int
    new_stock: int
    unit_price: float
    total_amount: float
    performed_by: Optional[int] = None
    prescription_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
