"""
Medicine: one stocked inventory item.

Stock status (low stock, expired, expiring soon, days until expiry) is
derived from stored columns every time it is read and is never persisted.
"""
from datetime import date
from enum import Enum
from typing import Optional

from sqlalchemy import Column, Integer, String, Numeric, Boolean, Date, DateTime, Text, Index
from sqlalchemy.sql import func

from app.db.base import Base

EXPIRY_WARNING_DAYS = 30


class MedicineCategory(str, Enum):
    ANTIBIOTIC = "antibiotic"
    ANALGESIC = "analgesic"
    ANTIVIRAL = "antiviral"
    CARDIOVASCULAR = "cardiovascular"
    RESPIRATORY = "respiratory"
    GASTROINTESTINAL = "gastrointestinal"
    NEUROLOGICAL = "neurological"
    OTHER = "other"


class MedicinePriority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Shared ordering for priority and urgency tiers: critical first
TIER_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}


def days_until_expiry(expiry_date: date, today: Optional[date] = None) -> int:
    return (expiry_date - (today or date.today())).days


def is_low_stock(quantity: int, reorder_threshold: int) -> bool:
    return quantity <= reorder_threshold


def is_expired(expiry_date: date, today: Optional[date] = None) -> bool:
    return expiry_date < (today or date.today())


def is_expiring_soon(expiry_date: date, today: Optional[date] = None) -> bool:
    days = days_until_expiry(expiry_date, today)
    return 0 < days <= EXPIRY_WARNING_DAYS


class Medicine(Base):
    __tablename__ = "medicines"
    __table_args__ = (
        Index("ix_medicines_category_priority", "category", "priority"),
        Index("ix_medicines_active_quantity", "is_active", "quantity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    generic_name = Column(String(255), nullable=False, index=True)
    brand_name = Column(String(255), nullable=True)
    category = Column(String(32), nullable=False, index=True)
    description = Column(Text, nullable=True)
    manufacturer = Column(String(255), nullable=False)
    batch_number = Column(String(128), nullable=False)
    expiry_date = Column(Date, nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    unit = Column(String(32), nullable=False, default="tablets")
    price_per_unit = Column(Numeric(10, 2), nullable=False)
    reorder_threshold = Column(Integer, nullable=False, default=10)
    priority = Column(String(16), nullable=False, default=MedicinePriority.MEDIUM.value, index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def days_until_expiry(self) -> int:
        return days_until_expiry(self.expiry_date)

    @property
    def is_low_stock(self) -> bool:
        return is_low_stock(self.quantity, self.reorder_threshold)

    @property
    def is_expired(self) -> bool:
        return is_expired(self.expiry_date)

    @property
    def is_expiring_soon(self) -> bool:
        return is_expiring_soon(self.expiry_date)

    def __repr__(self):
        return f"<Medicine id={self.id} name={self.name} qty={self.quantity}>"
