"""Transaction log entries. Used by inventory, dispensing and reorder receipt.

Entries are only flushed here; the calling workflow owns the commit so the
log row lands in the same database transaction as the stock change.
"""
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.models.medicine import Medicine
from app.models.transaction import Transaction, TransactionType


def record_transaction(
    db: Session,
    medicine: Medicine,
    type: TransactionType,
    quantity: int,
    previous_stock: int,
    new_stock: int,
    performed_by: Optional[int],
    prescription_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> Transaction:
    unit_price = Decimal(str(medicine.price_per_unit or 0))
    entry = Transaction(
        medicine_id=medicine.id,
        medicine_name=medicine.name,
        type=type.value,
        quantity=quantity,
        previous_stock=previous_stock,
        new_stock=new_stock,
        unit_price=unit_price,
        total_amount=unit_price * quantity,
        performed_by=performed_by,
        prescription_id=prescription_id,
        notes=notes,
    )
    db.add(entry)
    db.flush()
    return entry
