"""
ReorderRequest: restocking proposal raised by the sweep for a low-stock medicine.

Status flow: PENDING -> APPROVED -> ORDERED -> RECEIVED.
PENDING and APPROVED requests can be CANCELLED.
At most one open (PENDING or APPROVED) request per medicine, backed by a
partial unique index.
"""
from enum import Enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


class ReorderStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    ORDERED = "ordered"
    RECEIVED = "received"
    CANCELLED = "cancelled"


OPEN_STATUSES = (ReorderStatus.PENDING.value, ReorderStatus.APPROVED.value)

_OPEN_CLAUSE = text("status IN ('pending', 'approved')")


class ReorderRequest(Base):
    __tablename__ = "reorder_requests"
    __table_args__ = (
        Index("ix_reorder_medicine_status", "medicine_id", "status"),
        Index(
            "uq_reorder_open_per_medicine",
            "medicine_id",
            unique=True,
            sqlite_where=_OPEN_CLAUSE,
            postgresql_where=_OPEN_CLAUSE,
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    medicine_id = Column(Integer, ForeignKey("medicines.id"), nullable=False, index=True)
    medicine_name = Column(String(255), nullable=False)
    current_stock = Column(Integer, nullable=False)
    reorder_threshold = Column(Integer, nullable=False)
    requested_quantity = Column(Integer, nullable=False)
    received_quantity = Column(Integer, nullable=True)
    status = Column(String(16), nullable=False, default=ReorderStatus.PENDING.value, index=True)
    requested_by = Column(Integer, ForeignKey("users.id"), nullable=True)  # None: raised by the sweep
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    ordered_at = Column(DateTime(timezone=True), nullable=True)
    received_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    medicine = relationship("Medicine")
