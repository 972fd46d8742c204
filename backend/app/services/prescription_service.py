"""
Prescription workflow: create, validate against stock, dispense.

Validation never touches stock. Dispensing debits every item with a
conditional UPDATE inside one transaction; if any item cannot be covered the
whole call is rolled back.
"""
import logging
import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.audit import AuditLog
from app.core.exceptions import InsufficientStockError, InvalidStateError, NotFoundError
from app.models.medicine import Medicine
from app.models.prescription import Prescription, PrescriptionItem, PrescriptionStatus
from app.models.transaction import Transaction, TransactionType
from app.schemas.prescription import PrescriptionCreate
from app.services.transaction_service import record_transaction

logger = logging.getLogger(__name__)


@dataclass
class ValidationOutcome:
    prescription: Prescription
    errors: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def generate_prescription_number() -> str:
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=9))
    return f"RX-{int(time.time() * 1000)}-{suffix}"


def create_prescription(db: Session, data: PrescriptionCreate, user_id: Optional[int] = None) -> Prescription:
    prescription = Prescription(
        prescription_number=generate_prescription_number(),
        patient_name=data.patient_name,
        patient_age=data.patient_age,
        patient_gender=data.patient_gender,
        doctor_name=data.doctor_name,
        doctor_license=data.doctor_license,
        status=PrescriptionStatus.PENDING.value,
        notes=data.notes,
    )
    for position, item in enumerate(data.items):
        prescription.items.append(PrescriptionItem(
            position=position,
            medicine_id=item.medicine_id,
            medicine_name=item.medicine_name,
            quantity=item.quantity,
            dosage=item.dosage,
            duration=item.duration,
        ))
    db.add(prescription)
    db.commit()
    db.refresh(prescription)

    AuditLog.log_action("create", "prescription", prescription.id, user_id,
                        changes={"number": prescription.prescription_number, "items": len(data.items)})
    return prescription


def list_prescriptions(
    db: Session,
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Prescription], int]:
    q = db.query(Prescription)
    if status:
        q = q.filter(Prescription.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(
            Prescription.prescription_number.ilike(pattern),
            Prescription.patient_name.ilike(pattern),
            Prescription.doctor_name.ilike(pattern),
        ))
    total = q.count()
    items = (
        q.order_by(Prescription.created_at.desc(), Prescription.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def get_prescription(db: Session, prescription_id: int) -> Prescription:
    prescription = db.query(Prescription).filter(Prescription.id == prescription_id).first()
    if not prescription:
        raise NotFoundError("Prescription not found")
    return prescription


def _item_error(db: Session, item: PrescriptionItem) -> Optional[str]:
    """First failing check for one item, or None."""
    medicine = db.query(Medicine).filter(Medicine.id == item.medicine_id).first()
    if not medicine:
        return f"Medicine {item.medicine_name} not found"
    if not medicine.is_active:
        return f"Medicine {item.medicine_name} is not active"
    if medicine.quantity < item.quantity:
        return (
            f"Insufficient stock for {item.medicine_name}. "
            f"Available: {medicine.quantity}, Required: {item.quantity}"
        )
    if medicine.is_expired:
        return f"Medicine {item.medicine_name} has expired"
    if medicine.is_expiring_soon:
        logger.warning(
            f"Medicine {medicine.name} expires in {medicine.days_until_expiry} days "
            f"(prescription item {item.id})"
        )
    return None


def validate_prescription(
    db: Session,
    prescription_id: int,
    user_id: int,
    notes: Optional[str] = None,
) -> ValidationOutcome:
    """
    Check every item against current stock and move the prescription to
    VALIDATED, or to REJECTED with the collected errors.

    Raises:
        NotFoundError: unknown prescription
        InvalidStateError: prescription is not pending
    """
    prescription = get_prescription(db, prescription_id)
    if prescription.status != PrescriptionStatus.PENDING.value:
        raise InvalidStateError(
            f"Prescription cannot be validated. Current status: {prescription.status}"
        )

    errors = [e for e in (_item_error(db, item) for item in prescription.items) if e]

    prescription.validated_by = user_id
    prescription.validated_at = datetime.utcnow()
    if errors:
        prescription.status = PrescriptionStatus.REJECTED.value
        prescription.rejection_reason = "; ".join(errors)
    else:
        prescription.status = PrescriptionStatus.VALIDATED.value
        if notes:
            prescription.notes = notes
    db.commit()
    db.refresh(prescription)

    AuditLog.log_action("validate", "prescription", prescription.id, user_id,
                        changes={"status": prescription.status, "errors": len(errors)})
    return ValidationOutcome(prescription=prescription, errors=errors)


def dispense_prescription(
    db: Session,
    prescription_id: int,
    user_id: int,
) -> Tuple[Prescription, List[Transaction]]:
    """
    Debit stock for every item and mark the prescription DISPENSED.

    Raises:
        NotFoundError: unknown prescription
        InvalidStateError: prescription is not validated, or was dispensed concurrently
        InsufficientStockError: an item could not be covered; nothing was applied
    """
    prescription = get_prescription(db, prescription_id)
    if prescription.status != PrescriptionStatus.VALIDATED.value:
        raise InvalidStateError(
            f"Prescription must be validated before dispensing. Current status: {prescription.status}"
        )

    transactions: List[Transaction] = []
    try:
        for item in prescription.items:
            rows = (
                db.query(Medicine)
                .filter(
                    Medicine.id == item.medicine_id,
                    Medicine.is_active.is_(True),
                    Medicine.quantity >= item.quantity,
                )
                .update(
                    {Medicine.quantity: Medicine.quantity - item.quantity},
                    synchronize_session=False,
                )
            )
            if rows == 0:
                raise InsufficientStockError(
                    f"Insufficient stock for {item.medicine_name}",
                    errors=[f"Cannot dispense {item.quantity} of {item.medicine_name}"],
                )

            medicine = db.query(Medicine).filter(Medicine.id == item.medicine_id).first()
            db.refresh(medicine)
            transactions.append(record_transaction(
                db,
                medicine,
                TransactionType.DISPENSE,
                quantity=item.quantity,
                previous_stock=medicine.quantity + item.quantity,
                new_stock=medicine.quantity,
                performed_by=user_id,
                prescription_id=prescription.id,
                notes=f"Dispensed for prescription {prescription.prescription_number}",
            ))

        rows = (
            db.query(Prescription)
            .filter(
                Prescription.id == prescription.id,
                Prescription.status == PrescriptionStatus.VALIDATED.value,
            )
            .update(
                {
                    "status": PrescriptionStatus.DISPENSED.value,
                    "dispensed_by": user_id,
                    "dispensed_at": datetime.utcnow(),
                },
                synchronize_session=False,
            )
        )
        if rows == 0:
            raise InvalidStateError("Prescription was already dispensed")

        db.commit()
    except (InsufficientStockError, InvalidStateError):
        db.rollback()
        logger.warning(f"Dispense rolled back for prescription {prescription_id}")
        raise
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(prescription)
    for t in transactions:
        db.refresh(t)

    AuditLog.log_action("dispense", "prescription", prescription.id, user_id,
                        changes={"items": len(transactions)})
    return prescription, transactions
