"""
Prescription and its ordered items.

Status flow: PENDING -> VALIDATED -> DISPENSED, or PENDING -> REJECTED.
Transitions are one-way; nothing moves a prescription back to PENDING.
"""
from enum import Enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


class PrescriptionStatus(str, Enum):
    PENDING = "pending"
    VALIDATED = "validated"
    DISPENSED = "dispensed"
    REJECTED = "rejected"
    EXPIRED = "expired"


class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True, index=True)
    prescription_number = Column(String(64), unique=True, nullable=False, index=True)
    patient_name = Column(String(255), nullable=False)
    patient_age = Column(Integer, nullable=False)
    patient_gender = Column(String(16), nullable=False)
    doctor_name = Column(String(255), nullable=False)
    doctor_license = Column(String(128), nullable=False)
    status = Column(String(16), nullable=False, default=PrescriptionStatus.PENDING.value, index=True)
    validated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    validated_at = Column(DateTime(timezone=True), nullable=True)
    dispensed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    dispensed_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship(
        "PrescriptionItem",
        back_populates="prescription",
        order_by="PrescriptionItem.position",
        cascade="all, delete-orphan",
    )


class PrescriptionItem(Base):
    __tablename__ = "prescription_items"

    id = Column(Integer, primary_key=True, index=True)
    prescription_id = Column(Integer, ForeignKey("prescriptions.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    medicine_id = Column(Integer, nullable=False, index=True)  # no FK; unknown ids are rejected by validate
    medicine_name = Column(String(255), nullable=False)  # snapshot at prescription time
    quantity = Column(Integer, nullable=False)
    dosage = Column(String(255), nullable=False)  # e.g. "500mg twice daily"
    duration = Column(Integer, nullable=False)  # days

    prescription = relationship("Prescription", back_populates="items")
