from typing import Optional
from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from app.models.medicine import MedicineCategory, MedicinePriority


class MedicineCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    generic_name: str = Field(..., min_length=1, max_length=255)
    brand_name: Optional[str] = None
    category: MedicineCategory
    description: Optional[str] = None
    manufacturer: str = Field(..., min_length=1)
    batch_number: str = Field(..., min_length=1)
    expiry_date: date
    quantity: int = Field(0, ge=0)
    unit: str = Field("tablets", min_length=1)
    price_per_unit: float = Field(..., ge=0)
    reorder_threshold: int = Field(10, ge=0)
    priority: MedicinePriority = MedicinePriority.MEDIUM

    @field_validator("name", "generic_name", "manufacturer", "batch_number", "unit")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be empty")
        return v


class MedicineUpdate(BaseModel):
    name: Optional[str] = None
    generic_name: Optional[str] = None
    brand_name: Optional[str] = None
    category: Optional[MedicineCategory] = None
    description: Optional[str] = None
    manufacturer: Optional[str] = None
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    quantity: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = None
    price_per_unit: Optional[float] = Field(None, ge=0)
    reorder_threshold: Optional[int] = Field(None, ge=0)
    priority: Optional[MedicinePriority] = None
    is_active: Optional[bool] = None

    @field_validator("name", "generic_name", "manufacturer", "batch_number", "unit")
    @classmethod
    def not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be empty")
        return v


class MedicineResponse(BaseModel):
    id: int
    name: str
    generic_name: str
    brand_name: Optional[str] = None
    category: str
    description: Optional[str] = None
    manufacturer: str
    batch_number: str
    expiry_date: date
    quantity: int
    unit: str
    price_per_unit: float
    reorder_threshold: int
    priority: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Derived on read
    days_until_expiry: int
    is_low_stock: bool
    is_expired: bool
    is_expiring_soon: bool

    class Config:
        from_attributes = True
