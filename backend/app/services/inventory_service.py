"""Medicine inventory: filtered listing, CRUD and expiry alerts.

Every quantity change made here appends a Transaction row in the same commit.
"""
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, Query

from app.core.audit import AuditLog
from app.core.exceptions import ConflictError, NotFoundError
from app.models.medicine import Medicine, EXPIRY_WARNING_DAYS
from app.models.transaction import TransactionType
from app.schemas.medicine import MedicineCreate, MedicineUpdate
from app.services.transaction_service import record_transaction

logger = logging.getLogger(__name__)


def _filtered_query(
    db: Session,
    search: Optional[str] = None,
    category: Optional[str] = None,
    priority: Optional[str] = None,
    low_stock: bool = False,
    expiring_soon: bool = False,
    expired: bool = False,
) -> Query:
    today = date.today()
    q = db.query(Medicine).filter(Medicine.is_active.is_(True))

    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(
            Medicine.name.ilike(pattern),
            Medicine.generic_name.ilike(pattern),
            Medicine.brand_name.ilike(pattern),
        ))
    if category:
        q = q.filter(Medicine.category == category)
    if priority:
        q = q.filter(Medicine.priority == priority)
    if low_stock:
        q = q.filter(Medicine.quantity <= Medicine.reorder_threshold)
    if expiring_soon:
        # 0 < days until expiry <= 30
        q = q.filter(
            Medicine.expiry_date > today,
            Medicine.expiry_date <= today + timedelta(days=EXPIRY_WARNING_DAYS),
        )
    if expired:
        q = q.filter(Medicine.expiry_date < today)
    return q


def list_medicines(
    db: Session,
    page: int = 1,
    limit: int = 10,
    **filters,
) -> Tuple[List[Medicine], int]:
    """Return one page of active medicines matching the filters, plus the total count."""
    q = _filtered_query(db, **filters)
    total = q.count()
    items = (
        q.order_by(Medicine.created_at.desc(), Medicine.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    AuditLog.log_workflow("inventory", "Medicines retrieved", count=len(items), page=page, filters=filters)
    return items, total


def get_medicine(db: Session, medicine_id: int) -> Medicine:
    medicine = db.query(Medicine).filter(Medicine.id == medicine_id).first()
    if not medicine:
        raise NotFoundError("Medicine not found")
    return medicine


def create_medicine(db: Session, data: MedicineCreate, user_id: int) -> Medicine:
    """Add a medicine and log its opening stock as a purchase."""
    medicine = Medicine(
        name=data.name,
        generic_name=data.generic_name.strip(),
        brand_name=data.brand_name.strip() if data.brand_name else None,
        category=data.category.value,
        description=data.description,
        manufacturer=data.manufacturer,
        batch_number=data.batch_number,
        expiry_date=data.expiry_date,
        quantity=data.quantity,
        unit=data.unit,
        price_per_unit=Decimal(str(data.price_per_unit)),
        reorder_threshold=data.reorder_threshold,
        priority=data.priority.value,
        is_active=True,
    )
    db.add(medicine)
    db.flush()

    record_transaction(
        db,
        medicine,
        TransactionType.PURCHASE,
        quantity=medicine.quantity,
        previous_stock=0,
        new_stock=medicine.quantity,
        performed_by=user_id,
        notes="Initial stock entry",
    )
    db.commit()
    db.refresh(medicine)

    AuditLog.log_action("create", "medicine", medicine.id, user_id,
                        changes={"name": medicine.name, "quantity": medicine.quantity})
    return medicine


def update_medicine(db: Session, medicine_id: int, updates: MedicineUpdate, user_id: int) -> Medicine:
    """
    Apply a partial update; a quantity change is logged as an adjustment.

    The new quantity is written only if stock still holds the value read here.

    Raises:
        NotFoundError: unknown medicine
        ConflictError: stock moved since it was read; nothing was applied
    """
    medicine = get_medicine(db, medicine_id)
    previous_stock = medicine.quantity

    fields = updates.model_dump(exclude_unset=True)
    for key, value in fields.items():
        if key == "quantity":
            continue
        if value is None and key not in ("brand_name", "description"):
            continue
        if key in ("category", "priority") and value is not None:
            value = value.value if hasattr(value, "value") else value
        if key == "price_per_unit":
            value = Decimal(str(value))
        setattr(medicine, key, value)

    new_stock = fields.get("quantity")
    if new_stock is not None and new_stock != previous_stock:
        rows = (
            db.query(Medicine)
            .filter(Medicine.id == medicine.id, Medicine.quantity == previous_stock)
            .update({Medicine.quantity: new_stock}, synchronize_session=False)
        )
        if rows == 0:
            db.rollback()
            raise ConflictError("Stock changed while updating. Reload the medicine and try again.")
        record_transaction(
            db,
            medicine,
            TransactionType.ADJUSTMENT,
            quantity=abs(new_stock - previous_stock),
            previous_stock=previous_stock,
            new_stock=new_stock,
            performed_by=user_id,
            notes="Stock adjustment",
        )

    db.commit()
    db.refresh(medicine)

    AuditLog.log_action("update", "medicine", medicine.id, user_id, changes={"fields": sorted(fields)})
    return medicine


def deactivate_medicine(db: Session, medicine_id: int, user_id: int) -> Medicine:
    """Soft delete: the row stays for transaction history."""
    medicine = get_medicine(db, medicine_id)
    medicine.is_active = False
    db.commit()
    db.refresh(medicine)
    AuditLog.log_action("delete", "medicine", medicine.id, user_id, changes={"name": medicine.name})
    return medicine


def expiry_alerts(db: Session, days: int = 30) -> Tuple[List[Medicine], List[Medicine]]:
    """Active medicines expiring within `days` (not yet expired), and already expired ones."""
    today = date.today()
    expiring = (
        db.query(Medicine)
        .filter(
            Medicine.is_active.is_(True),
            Medicine.expiry_date > today,
            Medicine.expiry_date <= today + timedelta(days=days),
        )
        .order_by(Medicine.expiry_date.asc())
        .all()
    )
    expired = (
        db.query(Medicine)
        .filter(Medicine.is_active.is_(True), Medicine.expiry_date < today)
        .order_by(Medicine.expiry_date.asc())
        .all()
    )
    for m in expired:
        logger.warning(f"Expired medicine still active: {m.name} (id={m.id}, expired {m.expiry_date})")
    AuditLog.log_workflow("inventory", "Expiry alerts retrieved",
                          expiring=len(expiring), expired=len(expired), days=days)
    return expiring, expired
