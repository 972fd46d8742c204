"""
Transaction: immutable record of one stock movement.

Rows are appended by inventory CRUD, dispensing and reorder receipt and are
never updated or deleted. Demand analytics reads only this table.
"""
from enum import Enum

from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime, Text, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


class TransactionType(str, Enum):
    PURCHASE = "purchase"
    SALE = "sale"
    DISPENSE = "dispense"
    ADJUSTMENT = "adjustment"
    EXPIRED = "expired"
    RETURN = "return"


# Outflows counted as demand
DEMAND_TYPES = (TransactionType.SALE.value, TransactionType.DISPENSE.value)


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_medicine_created", "medicine_id", "created_at"),
        Index("ix_transactions_type_created", "type", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    medicine_id = Column(Integer, ForeignKey("medicines.id"), nullable=False, index=True)
    medicine_name = Column(String(255), nullable=False)
    type = Column(String(16), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    performed_by = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    prescription_id = Column(Integer, ForeignKey("prescriptions.id"), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    medicine = relationship("Medicine", backref="transactions")
